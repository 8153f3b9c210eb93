"""Screen-space projections for the two selection surfaces.

A projection turns a press on the rendered surface into a domain point and
decides whether the press grabbed the existing marker. Gesture handling only
depends on the `SurfaceProjection` protocol, so selection logic never needs a
display.
"""

from typing import Optional, Protocol, Union

from pydantic import BaseModel, Field

from ..models.geo import FantasyPoint, GeoPoint
from .geo_utils import SCREEN_MARKER_THRESHOLD_PX, is_near_geo_marker, is_near_screen_marker

Point = Union[GeoPoint, FantasyPoint]


class SurfaceProjection(Protocol):
    """Maps screen coordinates onto a selection surface."""

    def to_point(self, x: float, y: float) -> Optional[Point]:
        """Domain point under screen position (x, y), or None if off-surface."""
        ...

    def is_near(self, marker: Point, x: float, y: float) -> bool:
        """Whether a press at (x, y) grabs the marker."""
        ...


class GeoViewport(BaseModel):
    """Visible region of the real-world map widget.

    Projection is linear inside the bounds, which is accurate enough for the
    span of a street-level viewport.
    """

    north: float = Field(..., ge=-90, le=90, description="Latitude at the top edge")
    south: float = Field(..., ge=-90, le=90, description="Latitude at the bottom edge")
    east: float = Field(..., ge=-180, le=180, description="Longitude at the right edge")
    west: float = Field(..., ge=-180, le=180, description="Longitude at the left edge")
    width: int = Field(..., gt=0, description="Widget width in pixels")
    height: int = Field(..., gt=0, description="Widget height in pixels")
    zoom: float = Field(default=15.0, ge=0, le=22, description="Map zoom level")

    def to_point(self, x: float, y: float) -> Optional[GeoPoint]:
        """Convert pixel position to GPS coordinates."""
        # Normalize pixel to 0-1
        x_norm = x / self.width
        y_norm = 1 - (y / self.height)  # Flip Y axis

        lon = self.west + x_norm * (self.east - self.west)
        lat = self.south + y_norm * (self.north - self.south)

        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        return GeoPoint(latitude=lat, longitude=lon)

    def to_screen(self, point: GeoPoint) -> tuple[float, float]:
        """Convert GPS coordinates to pixel position."""
        x_norm = (point.longitude - self.west) / (self.east - self.west)
        y_norm = (point.latitude - self.south) / (self.north - self.south)
        return (x_norm * self.width, (1 - y_norm) * self.height)

    def is_near(self, marker: Point, x: float, y: float) -> bool:
        point = self.to_point(x, y)
        if point is None or not isinstance(marker, GeoPoint):
            return False
        return is_near_geo_marker(marker, point, self.zoom)


class ImageViewport(BaseModel):
    """Pan/zoom state of the fantasy map image widget.

    Mirrors a 2D affine image matrix with no rotation: screen = image * scale + translation.
    """

    image_width: int = Field(..., gt=0, description="Intrinsic image width in pixels")
    image_height: int = Field(..., gt=0, description="Intrinsic image height in pixels")
    scale_x: float = Field(default=1.0, gt=0)
    scale_y: float = Field(default=1.0, gt=0)
    translate_x: float = Field(default=0.0)
    translate_y: float = Field(default=0.0)
    marker_threshold: float = Field(default=SCREEN_MARKER_THRESHOLD_PX, gt=0)

    def to_point(self, x: float, y: float) -> Optional[FantasyPoint]:
        image_x = (x - self.translate_x) / self.scale_x
        image_y = (y - self.translate_y) / self.scale_y

        if image_x < 0 or image_x > self.image_width or image_y < 0 or image_y > self.image_height:
            return None

        return FantasyPoint(
            x_percent=image_x / self.image_width,
            y_percent=image_y / self.image_height,
        )

    def to_screen(self, point: FantasyPoint) -> tuple[float, float]:
        return (
            point.x_percent * self.image_width * self.scale_x + self.translate_x,
            point.y_percent * self.image_height * self.scale_y + self.translate_y,
        )

    def is_near(self, marker: Point, x: float, y: float) -> bool:
        if not isinstance(marker, FantasyPoint):
            return False
        return is_near_screen_marker(self.to_screen(marker), (x, y), self.marker_threshold)
