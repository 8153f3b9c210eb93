"""Shared test fixtures."""

import asyncio
from io import BytesIO
from typing import Optional

import pytest
from PIL import Image

from streetgen.models.settings import AspectRatio, ImageSize
from streetgen.services.gemini_service import GenerationResult
from streetgen.services.generation_service import GenerationOrchestrator
from streetgen.services.map_session import MapSession
from streetgen.services.settings_service import SettingsRepository, SettingsService, YamlFileStore
from streetgen.services.storage_service import FantasyMapStorage, GalleryService


def make_png(width: int = 64, height: int = 64, color=(120, 160, 200, 255)) -> bytes:
    """Encode a solid-color RGBA image as PNG."""
    img = Image.new("RGBA", (width, height), color)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeGemini:
    """Stands in for GeminiService; records calls and returns a canned image.

    Set `gate` to an asyncio.Event (inside the running loop) to hold the
    response until the test releases it.
    """

    def __init__(self, image_bytes: Optional[bytes] = None, error: Optional[Exception] = None):
        self.image_bytes = image_bytes or make_png(32, 18, (10, 200, 30, 255))
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[dict] = []
        self.closed = False

    async def generate_image(
        self,
        api_key: str,
        prompt: str,
        reference_png: bytes,
        aspect_ratio: AspectRatio = AspectRatio.RATIO_16_9,
        image_size: ImageSize = ImageSize.SIZE_2K,
    ) -> GenerationResult:
        self.calls.append({
            "api_key": api_key,
            "prompt": prompt,
            "reference_png": reference_png,
            "aspect_ratio": aspect_ratio,
            "image_size": image_size,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return GenerationResult(
            image_bytes=self.image_bytes,
            prompt_used=prompt,
            model="fake-image-model",
            generation_time=0.01,
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def sample_png():
    """64x64 PNG bytes."""
    return make_png()


@pytest.fixture
def wide_png():
    """Large landscape PNG, above the reference size limit."""
    return make_png(3000, 1500, (200, 100, 50, 255))


@pytest.fixture
def settings_store(tmp_path):
    """YAML-backed store in a temporary directory."""
    return YamlFileStore(tmp_path / "data" / "settings.yaml")


@pytest.fixture
def settings_repo(settings_store):
    return SettingsRepository(settings_store)


@pytest.fixture
def fantasy_storage(tmp_path):
    return FantasyMapStorage(tmp_path / "data" / "fantasy_maps")


@pytest.fixture
def gallery(tmp_path):
    return GalleryService(tmp_path / "pictures")


@pytest.fixture
def settings_service(settings_repo, fantasy_storage):
    return SettingsService(settings_repo, fantasy_storage)


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def orchestrator(fake_gemini):
    return GenerationOrchestrator(fake_gemini)


@pytest.fixture
def session(settings_repo, orchestrator, fantasy_storage, gallery):
    """MapSession wired to temporary files and a fake image service."""
    return MapSession(
        settings=settings_repo,
        orchestrator=orchestrator,
        fantasy_storage=fantasy_storage,
        gallery=gallery,
    )


@pytest.fixture
def fantasy_map(settings_service, sample_png):
    """A stored fantasy map (not active)."""
    return settings_service.save_fantasy_map(
        "Middle Earth",
        world_context="Hobbits live in round houses.",
        image_source=sample_png,
    )
