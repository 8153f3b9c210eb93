"""Tests for bearing and compass utilities."""

import pytest

from streetgen.models.geo import FantasyPoint, GeoPoint
from streetgen.utils.geo_utils import (
    COMPASS_ABBREVIATIONS,
    COMPASS_NAMES,
    bearing_degrees,
    compass_abbreviation_16,
    compass_name_16,
    fantasy_bearing_degrees,
    format_direction,
    geo_marker_threshold_meters,
    haversine_distance,
    is_near_geo_marker,
    is_near_screen_marker,
    normalize_degrees,
)


class TestBearingDegrees:
    """Test real-world bearings."""

    def test_due_north(self):
        start = GeoPoint(latitude=37.0, longitude=-122.0)
        end = GeoPoint(latitude=37.001, longitude=-122.0)
        assert bearing_degrees(start, end) == 0
        assert compass_name_16(bearing_degrees(start, end)) == "North"

    def test_due_west(self):
        start = GeoPoint(latitude=0.0, longitude=0.0)
        end = GeoPoint(latitude=0.0, longitude=-0.001)
        assert bearing_degrees(start, end) == 270
        assert compass_name_16(270) == "West"

    def test_due_east(self):
        start = GeoPoint(latitude=10.0, longitude=10.0)
        end = GeoPoint(latitude=10.0, longitude=10.5)
        assert bearing_degrees(start, end) == 90

    def test_due_south(self):
        start = GeoPoint(latitude=10.0, longitude=10.0)
        end = GeoPoint(latitude=9.5, longitude=10.0)
        assert bearing_degrees(start, end) == 180

    def test_northeast_diagonal(self):
        start = GeoPoint(latitude=0.0, longitude=0.0)
        end = GeoPoint(latitude=1.0, longitude=1.0)
        assert compass_name_16(bearing_degrees(start, end)) == "Northeast"

    def test_identical_points(self):
        p = GeoPoint(latitude=51.5, longitude=-0.12)
        assert bearing_degrees(p, p) == 0

    def test_result_in_range(self):
        start = GeoPoint(latitude=0.0, longitude=0.0)
        for lat, lon in [(1, -0.0001), (-1, -1), (-0.0001, -1), (0.3, 0.7)]:
            result = bearing_degrees(start, GeoPoint(latitude=lat, longitude=lon))
            assert 0 <= result < 360


class TestFantasyBearingDegrees:
    """Test bearings on an image where y grows downward."""

    def test_up_is_north(self):
        start = FantasyPoint(x_percent=0.5, y_percent=0.5)
        end = FantasyPoint(x_percent=0.5, y_percent=0.2)
        assert fantasy_bearing_degrees(start, end) == 0

    def test_down_is_south(self):
        start = FantasyPoint(x_percent=0.5, y_percent=0.5)
        end = FantasyPoint(x_percent=0.5, y_percent=0.9)
        assert fantasy_bearing_degrees(start, end) == 180

    def test_right_is_east(self):
        start = FantasyPoint(x_percent=0.5, y_percent=0.5)
        end = FantasyPoint(x_percent=0.9, y_percent=0.5)
        assert fantasy_bearing_degrees(start, end) == 90

    def test_left_is_west(self):
        start = FantasyPoint(x_percent=0.5, y_percent=0.5)
        end = FantasyPoint(x_percent=0.1, y_percent=0.5)
        assert fantasy_bearing_degrees(start, end) == 270

    def test_identical_points(self):
        p = FantasyPoint(x_percent=0.3, y_percent=0.3)
        assert fantasy_bearing_degrees(p, p) == 0


class TestCompassNames:
    """Test 16-point compass naming."""

    @pytest.mark.parametrize("degrees", range(360))
    def test_every_direction_has_a_name(self, degrees):
        assert compass_name_16(degrees) in COMPASS_NAMES
        assert compass_abbreviation_16(degrees) in COMPASS_ABBREVIATIONS

    @pytest.mark.parametrize("degrees,expected", [
        (0, "North"),
        (11, "North"),
        (12, "North-Northeast"),
        (45, "Northeast"),
        (90, "East"),
        (135, "Southeast"),
        (180, "South"),
        (225, "Southwest"),
        (270, "West"),
        (315, "Northwest"),
        (348, "North-Northwest"),
        (349, "North"),
        (359, "North"),
    ])
    def test_sector_boundaries(self, degrees, expected):
        assert compass_name_16(degrees) == expected

    def test_names_and_abbreviations_align(self):
        assert len(COMPASS_NAMES) == 16
        assert len(COMPASS_ABBREVIATIONS) == 16
        assert compass_abbreviation_16(22) == "NNE"
        assert compass_abbreviation_16(202) == "SSW"

    def test_wraps_out_of_range(self):
        assert compass_name_16(360) == "North"
        assert compass_name_16(450) == "East"

    def test_format_direction(self):
        assert format_direction(45) == "45° (NE)"
        assert format_direction(0) == "0° (N)"


class TestNormalizeDegrees:
    """Test folding arbitrary angles into [0, 360)."""

    @pytest.mark.parametrize("degrees,expected", [
        (0, 0),
        (359.9, 359),
        (360, 0),
        (720, 0),
        (-90, 270),
        (45.7, 45),
    ])
    def test_normalize(self, degrees, expected):
        assert normalize_degrees(degrees) == expected


class TestHaversineDistance:
    """Test great-circle distance."""

    def test_zero_distance(self):
        assert haversine_distance(40.0, -74.0, 40.0, -74.0) == 0.0

    def test_one_degree_latitude(self):
        # ~111 km per degree of latitude
        assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=0.01)


class TestMarkerProximity:
    """Test whether a press grabs the existing marker."""

    def test_geo_threshold_halves_per_zoom_level(self):
        assert geo_marker_threshold_meters(15) == pytest.approx(2 * geo_marker_threshold_meters(16))

    def test_geo_near_and_far(self):
        marker = GeoPoint(latitude=40.0, longitude=-74.0)
        near = GeoPoint(latitude=40.00001, longitude=-74.0)
        far = GeoPoint(latitude=40.01, longitude=-74.0)
        assert is_near_geo_marker(marker, near, zoom=15)
        assert not is_near_geo_marker(marker, far, zoom=15)

    def test_screen_threshold(self):
        assert is_near_screen_marker((100, 100), (150, 100), 80)
        assert not is_near_screen_marker((100, 100), (200, 100), 80)
