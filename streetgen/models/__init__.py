"""Data models for street view generation."""

from .geo import FantasyPoint, GeoPoint
from .generation import (
    Error,
    FantasyLocation,
    GenerationRequest,
    GenerationState,
    Idle,
    Loading,
    Location,
    RealWorldLocation,
    RequirementHint,
    SaveResult,
    Success,
)
from .settings import (
    AspectRatio,
    CustomStyle,
    FantasyMap,
    GenerationStyle,
    ImageSize,
    MapMode,
)

__all__ = [
    "GeoPoint",
    "FantasyPoint",
    "Error",
    "FantasyLocation",
    "GenerationRequest",
    "GenerationState",
    "Idle",
    "Loading",
    "Location",
    "RealWorldLocation",
    "RequirementHint",
    "SaveResult",
    "Success",
    "AspectRatio",
    "CustomStyle",
    "FantasyMap",
    "GenerationStyle",
    "ImageSize",
    "MapMode",
]
