"""Unit tests for the nearby-search geo helpers."""

import math

import pytest

from workwave.services.geoService import EARTH_RADIUS_KM, bounding_box, haversine_distance


def test_haversine_known_distance():
    # Mumbai CST to Pune station, roughly 120 km as the crow flies
    assert haversine_distance(18.9398, 72.8355, 18.5286, 73.8742) == pytest.approx(119, abs=3)


def test_haversine_same_point_is_zero():
    assert haversine_distance(10.0, 20.0, 10.0, 20.0) == 0


def test_bounding_box_contains_radius():
    box = bounding_box(12.97, 77.59, 10)
    assert box.min_lat < 12.97 < box.max_lat
    assert box.max_lat - box.min_lat == pytest.approx(2 * 10 / 111.19, rel=1e-3)
    # Longitude span widens away from the equator
    assert (box.max_lon - box.min_lon) > (box.max_lat - box.min_lat)
    assert not box.wraps_longitude


def test_bounding_box_at_pole_wraps():
    assert bounding_box(90.0, 0.0, 50).wraps_longitude


def test_bounding_box_across_the_antimeridian_splits_longitudes():
    box = bounding_box(0.0, 179.95, 50)
    ranges = box.longitude_ranges()

    assert len(ranges) == 2
    assert ranges[0][0] == pytest.approx(179.5, abs=0.01) and ranges[0][1] == 180.0
    assert ranges[1][0] == -180.0 and ranges[1][1] == pytest.approx(-179.6, abs=0.01)
    assert any(lo <= -179.95 <= hi for lo, hi in ranges)

    west = bounding_box(0.0, -179.95, 50).longitude_ranges()
    assert any(lo <= 179.95 <= hi for lo, hi in west)


def test_bounding_box_single_range_away_from_the_antimeridian():
    box = bounding_box(12.97, 77.59, 10)
    assert box.longitude_ranges() == [(box.min_lon, box.max_lon)]


def test_bounding_box_high_latitude_reaches_circle_edge():
    angular = 500 / EARTH_RADIUS_KM
    edge_lat = math.degrees(math.asin(math.sin(math.radians(80)) / math.cos(angular)))
    edge_lon = math.degrees(math.asin(math.sin(angular) / math.cos(math.radians(80))))
    assert haversine_distance(80.0, 0.0, edge_lat, edge_lon) == pytest.approx(500, abs=0.01)

    box = bounding_box(80.0, 0.0, 500)
    assert box.max_lon == pytest.approx(edge_lon)
    assert box.min_lat <= edge_lat <= box.max_lat


def test_bounding_box_covering_a_pole_spans_every_longitude():
    box = bounding_box(88.0, 30.0, 500)
    assert box.wraps_longitude
    assert box.max_lat == 90.0
    assert box.longitude_ranges() == [(-180.0, 180.0)]
