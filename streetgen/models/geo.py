"""Points on the two selection surfaces."""

from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    """A geographic coordinate on the real-world map."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude coordinate")


class FantasyPoint(BaseModel):
    """A position on a fantasy map image.

    Stored as fractions of the image width/height so the selection survives
    rescaling of the image.
    """

    model_config = ConfigDict(frozen=True)

    x_percent: float = Field(..., ge=0, le=1, description="Fraction from the left edge")
    y_percent: float = Field(..., ge=0, le=1, description="Fraction from the top edge")
