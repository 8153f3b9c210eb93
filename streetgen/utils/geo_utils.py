"""Geographic and compass utilities."""

import math

from ..models.geo import FantasyPoint, GeoPoint

COMPASS_NAMES = [
    "North", "North-Northeast", "Northeast", "East-Northeast",
    "East", "East-Southeast", "Southeast", "South-Southeast",
    "South", "South-Southwest", "Southwest", "West-Southwest",
    "West", "West-Northwest", "Northwest", "North-Northwest",
]

COMPASS_ABBREVIATIONS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]

# Screen distance (px) within which a press grabs an existing fantasy marker
SCREEN_MARKER_THRESHOLD_PX = 80.0


def _angle_to_direction(angle: float) -> int:
    """Fold an atan2 result in degrees into an integer bearing in [0, 360)."""
    if angle < 0:
        angle += 360
    # -1e-15 + 360 rounds to 360.0 in floating point
    return int(angle) % 360


def bearing_degrees(start: GeoPoint, end: GeoPoint) -> int:
    """
    Bearing from start to end, clockwise from North.

    Uses the planar angle between the coordinate deltas, which matches what
    the user sees on the map surface. Identical points give 0.
    """
    d_lon = end.longitude - start.longitude
    d_lat = end.latitude - start.latitude
    return _angle_to_direction(math.degrees(math.atan2(d_lon, d_lat)))


def fantasy_bearing_degrees(start: FantasyPoint, end: FantasyPoint) -> int:
    """
    Bearing on a fantasy map image, clockwise from the top edge.

    Image y grows downward, so the vertical delta is inverted to keep
    "up" as North.
    """
    dx = end.x_percent - start.x_percent
    dy = start.y_percent - end.y_percent
    return _angle_to_direction(math.degrees(math.atan2(dx, dy)))


def normalize_degrees(degrees: float) -> int:
    """Wrap any angle into an integer in [0, 360)."""
    return int(degrees) % 360


def _compass_index(degrees: float) -> int:
    return int((normalize_degrees(degrees) + 11.25) // 22.5) % 16


def compass_name_16(degrees: float) -> str:
    """Full 16-point compass name for a bearing, e.g. 'North-Northeast'."""
    return COMPASS_NAMES[_compass_index(degrees)]


def compass_abbreviation_16(degrees: float) -> str:
    """Abbreviated 16-point compass name for a bearing, e.g. 'NNE'."""
    return COMPASS_ABBREVIATIONS[_compass_index(degrees)]


def format_direction(degrees: int) -> str:
    """Live readout shown while dragging, e.g. '45° (NE)'."""
    return f"{degrees}° ({compass_abbreviation_16(degrees)})"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points in meters.
    """
    R = 6371000  # Earth radius in meters

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def geo_marker_threshold_meters(zoom: float) -> float:
    """Ground distance that counts as touching the marker at a zoom level."""
    return 50000 / math.pow(2.0, zoom)


def is_near_geo_marker(marker: GeoPoint, point: GeoPoint, zoom: float) -> bool:
    """Whether a press at `point` grabs the marker on a real-world map."""
    distance = haversine_distance(marker.latitude, marker.longitude, point.latitude, point.longitude)
    return distance < geo_marker_threshold_meters(zoom)


def is_near_screen_marker(
    marker_xy: tuple[float, float],
    touch_xy: tuple[float, float],
    threshold: float = SCREEN_MARKER_THRESHOLD_PX,
) -> bool:
    """Whether a press at `touch_xy` grabs a marker drawn at `marker_xy`."""
    return math.hypot(touch_xy[0] - marker_xy[0], touch_xy[1] - marker_xy[1]) < threshold
