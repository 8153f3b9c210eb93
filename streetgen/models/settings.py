"""User-editable generation settings and persisted records."""

import time
import uuid
from enum import Enum

from pydantic import BaseModel, Field


class MapMode(str, Enum):
    """Which selection surface is active."""

    REAL_WORLD = "real_world"
    FANTASY = "fantasy"


class GenerationStyle(str, Enum):
    """Visual style of the generated view.

    CUSTOM resolves the user-defined style selected in settings.
    """

    REALISTIC = "realistic"
    CINEMATIC = "cinematic"
    RAINY = "rainy"
    VINTAGE = "vintage"
    ANIME = "anime"
    CUSTOM = "custom"


class AspectRatio(str, Enum):
    """Output aspect ratio; the value is the wire value sent to the model."""

    RATIO_16_9 = "16:9"
    RATIO_4_3 = "4:3"
    RATIO_3_4 = "3:4"
    RATIO_1_1 = "1:1"
    RATIO_9_16 = "9:16"
    RATIO_21_9 = "21:9"

    @property
    def label(self) -> str:
        return {
            AspectRatio.RATIO_16_9: "16:9 - Widescreen",
            AspectRatio.RATIO_4_3: "4:3 - Standard",
            AspectRatio.RATIO_3_4: "3:4 - Portrait",
            AspectRatio.RATIO_1_1: "1:1 - Square",
            AspectRatio.RATIO_9_16: "9:16 - Vertical",
            AspectRatio.RATIO_21_9: "21:9 - Ultrawide",
        }[self]


class ImageSize(str, Enum):
    """Output resolution tier; the value is the wire value sent to the model."""

    SIZE_1K = "1K"
    SIZE_2K = "2K"
    SIZE_4K = "4K"

    @property
    def label(self) -> str:
        return {
            ImageSize.SIZE_1K: "1K - Standard",
            ImageSize.SIZE_2K: "2K - High Quality",
            ImageSize.SIZE_4K: "4K - Ultra High",
        }[self]


def _new_id() -> str:
    return str(uuid.uuid4())


def _now_ms() -> int:
    return int(time.time() * 1000)


class CustomStyle(BaseModel):
    """A user-defined style prompt."""

    id: str = Field(default_factory=_new_id, description="Unique style id")
    name: str = Field(..., min_length=1, description="Display name")
    prompt: str = Field(..., min_length=1, description="Style text inserted into the prompt")


class FantasyMap(BaseModel):
    """A user-supplied map image used in place of the real-world map."""

    id: str = Field(default_factory=_new_id, description="Unique map id")
    name: str = Field(..., min_length=1, description="Name of the world or map")
    image_path: str = Field(..., description="Path of the stored PNG copy")
    world_context: str = Field(default="", description="Lore describing the world")
    created_at: int = Field(default_factory=_now_ms, description="Creation time (epoch ms)")
