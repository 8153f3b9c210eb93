"""Generation request and outcome types."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..errors import ErrorKind
from .geo import FantasyPoint, GeoPoint
from .settings import AspectRatio, GenerationStyle, ImageSize, MapMode


@dataclass(frozen=True)
class RealWorldLocation:
    """Where the viewer stands on the real-world map."""

    point: GeoPoint
    satellite: bool = False  # Reference image is satellite imagery, not a street map


@dataclass(frozen=True)
class FantasyLocation:
    """Where the viewer stands on a fantasy map."""

    map_name: str
    world_context: str
    point: FantasyPoint


Location = Union[RealWorldLocation, FantasyLocation]


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed for one call to the image model."""

    location: Location
    direction: int
    source_image: bytes  # Map capture or fantasy map image, any Pillow format
    style: GenerationStyle = GenerationStyle.REALISTIC
    custom_style_text: Optional[str] = None
    custom_prompt: Optional[str] = None
    aspect_ratio: AspectRatio = AspectRatio.RATIO_16_9
    image_size: ImageSize = ImageSize.SIZE_2K

    @property
    def mode(self) -> MapMode:
        if isinstance(self.location, FantasyLocation):
            return MapMode.FANTASY
        return MapMode.REAL_WORLD


# Generation states. Exactly one is current at a time; see GenerationOrchestrator.


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Loading:
    job_id: int
    name = "loading"


@dataclass(frozen=True)
class Success:
    image_bytes: bytes
    prompt: str
    model: str
    generation_time: float
    name = "success"


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str
    name = "error"


GenerationState = Union[Idle, Loading, Success, Error]


class SaveResult(str, Enum):
    """Outcome of saving the current image to the gallery."""

    SUCCESS = "success"
    FAILED = "failed"


class RequirementHint(str, Enum):
    """The single most important thing still missing before generation."""

    SELECT_FANTASY_MAP = "select_fantasy_map"
    FANTASY_LOCATION = "fantasy_location"
    FANTASY_DIRECTION = "fantasy_direction"
    LOCATION = "location"
    DIRECTION = "direction"
    API_KEY = "api_key"
    READY = "ready"

    @property
    def message(self) -> str:
        return {
            RequirementHint.SELECT_FANTASY_MAP: "Select a fantasy map",
            RequirementHint.FANTASY_LOCATION: "Tap the fantasy map to choose where you stand",
            RequirementHint.FANTASY_DIRECTION: "Drag from the marker to choose where you look",
            RequirementHint.LOCATION: "Tap the map to choose a location",
            RequirementHint.DIRECTION: "Drag from the marker to set a viewing direction",
            RequirementHint.API_KEY: "Add your Gemini API key in Settings",
            RequirementHint.READY: "Ready to generate",
        }[self]
