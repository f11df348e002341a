"""Geodesy tests."""

import math

import pytest

from proxalert.core.errors import InvalidCoordinates
from proxalert.core.geo import EARTH_RADIUS_M, distance_meters, midpoint, validate_coordinates


def test_distance_to_self_is_zero():
    assert distance_meters(48.8566, 2.3522, 48.8566, 2.3522) == 0.0


def test_distance_is_symmetric():
    a = (40.7128, -74.0060)
    b = (40.7138, -74.0050)
    assert distance_meters(*a, *b) == pytest.approx(distance_meters(*b, *a))


def test_one_degree_of_latitude():
    expected = EARTH_RADIUS_M * math.radians(1)
    assert distance_meters(0, 0, 1, 0) == pytest.approx(expected, rel=1e-9)


def test_known_city_distance():
    # Paris to London is roughly 344 km
    d = distance_meters(48.8566, 2.3522, 51.5074, -0.1278)
    assert 340_000 < d < 348_000


def test_antipodal_points_do_not_blow_up():
    d = distance_meters(0, 0, 0, 180)
    assert d == pytest.approx(math.pi * EARTH_RADIUS_M)


def test_midpoint():
    assert midpoint(10.0, 20.0, 12.0, 24.0) == (11.0, 22.0)


@pytest.mark.parametrize(
    "lat,lon,acc",
    [
        (95.0, 0.0, None),
        (-90.5, 0.0, None),
        (0.0, 181.0, None),
        (float("nan"), 0.0, None),
        (0.0, 0.0, 0.0),
        (0.0, 0.0, -5.0),
        ("10", 0.0, None),
    ],
)
def test_validate_rejects_bad_input(lat, lon, acc):
    with pytest.raises(InvalidCoordinates):
        validate_coordinates(lat, lon, acc)


def test_validate_accepts_edges():
    validate_coordinates(90, -180)
    validate_coordinates(-90, 180, accuracy=3.5)


def test_invalid_coordinates_is_a_value_error():
    with pytest.raises(ValueError):
        validate_coordinates(95, 0)
