"""API request/response models."""

from typing import Optional

from pydantic import BaseModel, Field

from ..models.geo import FantasyPoint, GeoPoint
from ..models.settings import AspectRatio, CustomStyle, FantasyMap, GenerationStyle, ImageSize, MapMode
from ..utils.surface import GeoViewport, ImageViewport


# =============================================================================
# Session Schemas
# =============================================================================


class GenerationSnapshot(BaseModel):
    """Generation state as seen by clients."""

    status: str
    job_id: Optional[int] = None
    model: Optional[str] = None
    generation_time: Optional[float] = None
    image_base64: Optional[str] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None


class SessionSnapshot(BaseModel):
    """Everything a client needs to render the map screen."""

    mode: MapMode
    point: Optional[dict[str, float]] = None
    direction: Optional[int] = None
    direction_name: Optional[str] = None
    preview_direction: Optional[int] = None
    phase: str
    active_fantasy_map: Optional[FantasyMap] = None
    fantasy_map_ready: bool
    can_generate: bool
    requirement_hint: str
    requirement_message: str
    map_center: GeoPoint
    map_zoom: float
    generation: GenerationSnapshot

    @classmethod
    def from_session(cls, session) -> "SessionSnapshot":
        return cls.model_validate(session.snapshot())


class ModeUpdate(BaseModel):
    """Request to switch the selection surface."""

    mode: MapMode


class GestureEvent(BaseModel):
    """A pointer event on the rendered surface.

    Exactly one viewport must match the active mode: `geo` for the
    real-world map, `image` for the fantasy map.
    """

    x: Optional[float] = None
    y: Optional[float] = None
    geo: Optional[GeoViewport] = None
    image: Optional[ImageViewport] = None


class GestureResult(BaseModel):
    """Outcome of a gesture event."""

    handled: bool
    direction: Optional[int] = None
    snapshot: SessionSnapshot


class PointUpdate(BaseModel):
    """Place the viewer directly, without a viewport."""

    geo: Optional[GeoPoint] = None
    fantasy: Optional[FantasyPoint] = None


class DirectionUpdate(BaseModel):
    """Set the viewing direction in degrees clockwise from North."""

    degrees: float


class GenerationStarted(BaseModel):
    """Response to a generate request."""

    job_id: Optional[int] = None
    snapshot: SessionSnapshot


class SaveImageResponse(BaseModel):
    result: str
    path: Optional[str] = None


# =============================================================================
# Settings Schemas
# =============================================================================


class SettingsView(BaseModel):
    """Current settings. The API key itself is never returned."""

    has_api_key: bool
    style: GenerationStyle
    selected_custom_style_id: Optional[str] = None
    aspect_ratio: AspectRatio
    image_size: ImageSize
    map_mode: MapMode
    custom_styles: list[CustomStyle]
    active_fantasy_map_id: Optional[str] = None


class SettingsUpdate(BaseModel):
    """Request to save the settings form."""

    api_key: str
    style: GenerationStyle = GenerationStyle.REALISTIC
    selected_custom_style_id: Optional[str] = None
    aspect_ratio: AspectRatio = AspectRatio.RATIO_16_9
    image_size: ImageSize = ImageSize.SIZE_2K


class CustomStyleCreate(BaseModel):
    name: str = Field(..., description="Display name")
    prompt: str = Field(..., description="Style text inserted into the prompt")


class FantasyMapUpdate(BaseModel):
    """Request to rename a fantasy map or change its world context."""

    name: str
    world_context: str = ""


class ActivateFantasyMap(BaseModel):
    map_id: Optional[str] = None


class PlaceResult(BaseModel):
    """Geocoding result."""

    query: str
    found: bool
    location: Optional[GeoPoint] = None


# =============================================================================
# Common
# =============================================================================


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str
