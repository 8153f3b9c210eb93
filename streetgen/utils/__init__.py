"""Utility functions for street view generation."""

from .geo_utils import (
    bearing_degrees,
    compass_abbreviation_16,
    compass_name_16,
    fantasy_bearing_degrees,
    format_direction,
    haversine_distance,
)
from .image_utils import decode_image, image_to_png_bytes, prepare_reference_png
from .observable import Observable
from .surface import GeoViewport, ImageViewport, SurfaceProjection

__all__ = [
    "bearing_degrees",
    "compass_abbreviation_16",
    "compass_name_16",
    "fantasy_bearing_degrees",
    "format_direction",
    "haversine_distance",
    "decode_image",
    "image_to_png_bytes",
    "prepare_reference_png",
    "Observable",
    "GeoViewport",
    "ImageViewport",
    "SurfaceProjection",
]
