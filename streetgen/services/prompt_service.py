"""Prompt construction for street-level view generation.

The prompt is assembled from fixed sections in a fixed order:

    location header -> map analysis (or world context) -> style -> camera -> trailer

Building is pure: the same inputs always produce the same string.
"""

from typing import Optional

from ..models.generation import FantasyLocation, GenerationRequest, Location, RealWorldLocation
from ..models.settings import GenerationStyle
from ..utils.geo_utils import compass_name_16

SATELLITE_ANALYSIS = (
    "Using the satellite imagery provided, analyze:\n"
    "- Building footprints, rooftop colors and materials visible from above\n"
    "- Vegetation patterns, trees, and landscaping\n"
    "- Road surfaces, parking areas, and infrastructure\n"
    "- Terrain features and shadows indicating building heights"
)

STREET_MAP_ANALYSIS = (
    "Using the street map provided, analyze:\n"
    "- Street layout and road patterns\n"
    "- Building density and neighborhood character\n"
    "- Green spaces and vegetation areas"
)

FANTASY_MAP_ANALYSIS = (
    "Using the fantasy map provided, interpret:\n"
    "- The terrain, coastlines, rivers and forests around the marked position\n"
    "- Nearby settlements, roads, castles and landmarks drawn on the map\n"
    "- The artistic conventions of the map as hints about architecture and culture"
)

CAMERA_PERSPECTIVE = (
    "CAMERA PERSPECTIVE:\n"
    "- First-person street-level view at eye height (1.7 meters)\n"
    "- Natural field of view as seen by human eyes\n"
    "- Ground-level perspective showing the street ahead"
)

GENERATE_NOW = "Generate the image now."

USER_REQUEST_HEADER = "IMPORTANT - USER'S SPECIFIC REQUEST (prioritize this):"

USER_REQUEST_FOOTER = (
    "Generate the image following the user's specific instructions above "
    "while maintaining the chosen style."
)


def _present(text: Optional[str]) -> bool:
    return text is not None and text.strip() != ""


class PromptBuilder:
    """Builds the natural-language instruction sent with the reference image."""

    # Canned style blocks
    STYLE_PROMPTS = {
        GenerationStyle.REALISTIC: (
            "STYLE: Photorealistic Street View\n"
            "Create a crystal-clear, ultra-realistic photograph as if captured by a "
            "professional street-level camera.\n"
            "- Perfect exposure and white balance\n"
            "- Sharp details on buildings, textures, and surfaces\n"
            "- Natural daylight conditions (clear sky, soft shadows)\n"
            "- Accurate architectural details and materials\n"
            "- Realistic depth of field\n"
            "The image should be indistinguishable from a real Google Street View photograph."
        ),
        GenerationStyle.CINEMATIC: (
            "STYLE: Cinematic Golden Hour\n"
            "Create a breathtaking cinematic shot during the magical golden hour.\n"
            "- Warm amber and orange sunlight washing over the scene\n"
            "- Long, dramatic shadows stretching across the street\n"
            "- Subtle lens flares where sunlight peeks through\n"
            "- Rich, saturated colors with a slight orange/teal color grade\n"
            "- Atmospheric haze adding depth and mystery\n"
            "- The kind of frame that belongs in an Oscar-winning film\n"
            "Make it look like a scene from a Denis Villeneuve or Roger Deakins masterpiece."
        ),
        GenerationStyle.RAINY: (
            "STYLE: Moody Rainy Day\n"
            "Create an atmospheric scene on a rainy day with that cozy, contemplative mood.\n"
            "- Wet, glistening streets reflecting lights and colors\n"
            "- Puddles creating mirror-like reflections of buildings\n"
            "- Soft, diffused lighting from overcast skies\n"
            "- Slight mist or light rain visible in the air\n"
            "- Neon signs and lights bleeding beautifully into the wet surfaces\n"
            "- That special ambiance of watching rain from inside a warm cafe\n"
            "Channel the vibes of a Wong Kar-wai film or Blade Runner's quieter moments."
        ),
        GenerationStyle.VINTAGE: (
            "STYLE: Retro 1970s Throwback\n"
            "Transform this location into a vintage photograph from the 1970s.\n"
            "- Faded, slightly desaturated colors with warm yellow/brown tint\n"
            "- Visible film grain adding nostalgic texture\n"
            "- Soft vignette darkening the corners\n"
            "- Slightly soft focus typical of old lenses\n"
            "- Colors that feel like they've aged beautifully over decades\n"
            "- The aesthetic of a treasured Polaroid or Kodachrome slide\n"
            "Make it feel like a photograph your parents might have taken on a road trip."
        ),
        GenerationStyle.ANIME: (
            "STYLE: Studio Ghibli Anime World\n"
            "Reimagine this location in the beautiful style of Japanese anime, "
            "specifically Studio Ghibli.\n"
            "- Vibrant, saturated colors that pop with life\n"
            "- Dreamy skies with fluffy, painterly cumulus clouds\n"
            "- Clean linework with soft cel-shading\n"
            "- That magical, whimsical atmosphere Ghibli is famous for\n"
            "- Lush vegetation rendered in rich greens\n"
            "- Warm, inviting lighting that makes everything feel alive\n"
            "- Small details that add charm (birds, floating particles, gentle wind effects)\n"
            "Channel the spirit of Spirited Away, Howl's Moving Castle, or My Neighbor Totoro."
        ),
    }

    def build(
        self,
        location: Location,
        direction: int,
        style: GenerationStyle = GenerationStyle.REALISTIC,
        custom_style_text: Optional[str] = None,
        custom_prompt: Optional[str] = None,
    ) -> str:
        """
        Assemble the full prompt.

        Args:
            location: Real-world coordinates or a position on a fantasy map
            direction: Viewing direction in degrees clockwise from North
            style: Selected style
            custom_style_text: Text of the selected custom style (CUSTOM only)
            custom_prompt: Free-text request from the user

        Returns:
            Prompt text
        """
        sections = [
            self.location_section(location, direction),
            self.analysis_section(location),
            self.style_section(style, custom_style_text),
            CAMERA_PERSPECTIVE,
        ]
        base = "\n\n".join(sections)

        if _present(custom_prompt):
            return f"{base}\n\n{USER_REQUEST_HEADER}\n{custom_prompt}\n\n{USER_REQUEST_FOOTER}"
        return f"{base}\n\n{GENERATE_NOW}"

    def build_for_request(self, request: GenerationRequest) -> str:
        """Build the prompt for a prepared generation request."""
        return self.build(
            request.location,
            request.direction,
            style=request.style,
            custom_style_text=request.custom_style_text,
            custom_prompt=request.custom_prompt,
        )

    def location_section(self, location: Location, direction: int) -> str:
        direction_name = compass_name_16(direction)

        if isinstance(location, FantasyLocation):
            x = location.point.x_percent * 100
            y = location.point.y_percent * 100
            return (
                f'LOCATION: Standing inside the fantasy world "{location.map_name}", at the '
                f"marked position on the provided map ({x:.1f}% from the left edge, "
                f"{y:.1f}% from the top edge), looking {direction_name} "
                f"({direction} degrees clockwise from the top of the map)"
            )

        point = location.point
        coords = f"{point.latitude:.6f}, {point.longitude:.6f}"
        return (
            f"LOCATION: Standing at coordinates ({coords}), looking {direction_name} "
            f"({direction} degrees from North)"
        )

    def analysis_section(self, location: Location) -> str:
        if isinstance(location, FantasyLocation):
            if _present(location.world_context):
                return (
                    f"{FANTASY_MAP_ANALYSIS}\n\n"
                    f"WORLD CONTEXT:\n{location.world_context.strip()}"
                )
            return FANTASY_MAP_ANALYSIS

        if isinstance(location, RealWorldLocation) and location.satellite:
            return SATELLITE_ANALYSIS
        return STREET_MAP_ANALYSIS

    def style_section(self, style: GenerationStyle, custom_style_text: Optional[str] = None) -> str:
        if style == GenerationStyle.CUSTOM:
            if _present(custom_style_text):
                return f"STYLE: Custom User Style\n{custom_style_text}"
            return self.STYLE_PROMPTS[GenerationStyle.REALISTIC]
        return self.STYLE_PROMPTS[style]
