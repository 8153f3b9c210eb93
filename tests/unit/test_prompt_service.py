"""Tests for prompt construction."""

import pytest

from streetgen.models.generation import FantasyLocation, GenerationRequest, RealWorldLocation
from streetgen.models.geo import FantasyPoint, GeoPoint
from streetgen.models.settings import GenerationStyle
from streetgen.services.prompt_service import (
    CAMERA_PERSPECTIVE,
    FANTASY_MAP_ANALYSIS,
    GENERATE_NOW,
    SATELLITE_ANALYSIS,
    STREET_MAP_ANALYSIS,
    USER_REQUEST_FOOTER,
    USER_REQUEST_HEADER,
    PromptBuilder,
)


@pytest.fixture
def builder():
    return PromptBuilder()


@pytest.fixture
def sf_location():
    return RealWorldLocation(point=GeoPoint(latitude=37.7749, longitude=-122.4194))


@pytest.fixture
def shire_location():
    return FantasyLocation(
        map_name="Middle Earth",
        world_context="Hobbits live in round houses.",
        point=FantasyPoint(x_percent=0.25, y_percent=0.5),
    )


class TestRealWorldPrompt:
    """Test prompts for real-world locations."""

    def test_location_header(self, builder, sf_location):
        prompt = builder.build(sf_location, 45)
        assert prompt.startswith(
            "LOCATION: Standing at coordinates (37.774900, -122.419400), "
            "looking Northeast (45 degrees from North)"
        )

    def test_section_order(self, builder, sf_location):
        prompt = builder.build(sf_location, 90, GenerationStyle.REALISTIC)
        style = PromptBuilder.STYLE_PROMPTS[GenerationStyle.REALISTIC]
        positions = [
            prompt.index("LOCATION:"),
            prompt.index(STREET_MAP_ANALYSIS),
            prompt.index(style),
            prompt.index(CAMERA_PERSPECTIVE),
            prompt.index(GENERATE_NOW),
        ]
        assert positions == sorted(positions)

    def test_sections_joined_by_blank_lines(self, builder, sf_location):
        prompt = builder.build(sf_location, 0)
        assert f"\n\n{STREET_MAP_ANALYSIS}\n\n" in prompt
        assert prompt.endswith(f"{CAMERA_PERSPECTIVE}\n\n{GENERATE_NOW}")

    def test_satellite_analysis(self, builder):
        location = RealWorldLocation(point=GeoPoint(latitude=1.0, longitude=2.0), satellite=True)
        prompt = builder.build(location, 0)
        assert SATELLITE_ANALYSIS in prompt
        assert STREET_MAP_ANALYSIS not in prompt

    def test_deterministic(self, builder, sf_location):
        first = builder.build(sf_location, 123, GenerationStyle.ANIME, custom_prompt="add a cat")
        second = PromptBuilder().build(sf_location, 123, GenerationStyle.ANIME, custom_prompt="add a cat")
        assert first == second


class TestStyles:
    """Test style section selection."""

    @pytest.mark.parametrize("style", [
        GenerationStyle.REALISTIC,
        GenerationStyle.CINEMATIC,
        GenerationStyle.RAINY,
        GenerationStyle.VINTAGE,
        GenerationStyle.ANIME,
    ])
    def test_canned_styles(self, builder, sf_location, style):
        prompt = builder.build(sf_location, 0, style)
        assert PromptBuilder.STYLE_PROMPTS[style] in prompt

    def test_custom_style_text(self, builder, sf_location):
        prompt = builder.build(sf_location, 0, GenerationStyle.CUSTOM, custom_style_text="Pixel art, 8-bit")
        assert "STYLE: Custom User Style\nPixel art, 8-bit" in prompt

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_custom_without_text_falls_back_to_realistic(self, builder, sf_location, text):
        prompt = builder.build(sf_location, 0, GenerationStyle.CUSTOM, custom_style_text=text)
        assert PromptBuilder.STYLE_PROMPTS[GenerationStyle.REALISTIC] in prompt
        assert "Custom User Style" not in prompt

    def test_custom_text_ignored_for_canned_style(self, builder, sf_location):
        prompt = builder.build(sf_location, 0, GenerationStyle.RAINY, custom_style_text="Pixel art")
        assert "Pixel art" not in prompt


class TestCustomPrompt:
    """Test the user's free-text request."""

    def test_custom_prompt_replaces_trailer(self, builder, sf_location):
        prompt = builder.build(sf_location, 0, custom_prompt="Add a red double-decker bus")
        assert prompt.endswith(
            f"{CAMERA_PERSPECTIVE}\n\n{USER_REQUEST_HEADER}\n"
            f"Add a red double-decker bus\n\n{USER_REQUEST_FOOTER}"
        )
        assert GENERATE_NOW not in prompt

    @pytest.mark.parametrize("custom", [None, "", "  \n "])
    def test_blank_custom_prompt_ignored(self, builder, sf_location, custom):
        prompt = builder.build(sf_location, 0, custom_prompt=custom)
        assert prompt.endswith(GENERATE_NOW)
        assert USER_REQUEST_HEADER not in prompt


class TestFantasyPrompt:
    """Test prompts for positions on a fantasy map."""

    def test_location_header(self, builder, shire_location):
        prompt = builder.build(shire_location, 270)
        assert prompt.startswith('LOCATION: Standing inside the fantasy world "Middle Earth"')
        assert "25.0% from the left edge" in prompt
        assert "50.0% from the top edge" in prompt
        assert "looking West" in prompt

    def test_world_context(self, builder, shire_location):
        prompt = builder.build(shire_location, 0)
        assert FANTASY_MAP_ANALYSIS in prompt
        assert "WORLD CONTEXT:\nHobbits live in round houses." in prompt
        assert STREET_MAP_ANALYSIS not in prompt

    def test_blank_world_context_omitted(self, builder):
        location = FantasyLocation(
            map_name="Westeros",
            world_context="  ",
            point=FantasyPoint(x_percent=0.1, y_percent=0.1),
        )
        prompt = builder.build(location, 0)
        assert "WORLD CONTEXT" not in prompt


class TestBuildForRequest:
    """Test building from a prepared request."""

    def test_uses_request_fields(self, builder, sf_location, sample_png):
        request = GenerationRequest(
            location=sf_location,
            direction=180,
            source_image=sample_png,
            style=GenerationStyle.VINTAGE,
            custom_prompt="at night",
        )
        prompt = builder.build_for_request(request)
        assert "looking South (180 degrees from North)" in prompt
        assert PromptBuilder.STYLE_PROMPTS[GenerationStyle.VINTAGE] in prompt
        assert "at night" in prompt
