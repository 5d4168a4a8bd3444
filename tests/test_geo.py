"""Tests for geodesy helpers."""

import pytest

from safestep.core.models import Position
from safestep.utils.geo import (
    coords_text,
    distance_m,
    format_distance,
    haversine_m,
    maps_link,
)


def _p(lat, lng):
    return Position(lat, lng, captured_at_ms=0)


def test_same_point_is_zero():
    a = _p(41.015137, 28.979530)
    assert distance_m(a, a) == 0.0


@pytest.mark.parametrize(
    "a,b",
    [
        ((0.0, 0.0), (0.001, 0.0)),
        ((41.015137, 28.979530), (41.02, 28.99)),
        ((-33.86, 151.21), (51.5, -0.12)),
    ],
)
def test_symmetric(a, b):
    pa, pb = _p(*a), _p(*b)
    assert distance_m(pa, pb) == pytest.approx(distance_m(pb, pa))


def test_one_millidegree_latitude_is_about_111m():
    assert distance_m(_p(0, 0), _p(0.001, 0)) == pytest.approx(111.19, abs=0.05)


def test_antipodal_points_do_not_blow_up():
    d = haversine_m(0.0, 0.0, 0.0, 180.0)
    assert d == pytest.approx(3.141592653589793 * 6371000.0, rel=1e-9)


@pytest.mark.parametrize(
    "meters,expected",
    [(0, "0m"), (87.4, "87m"), (999, "999m"), (1000, "1.00km"), (1234.0, "1.23km"), (2500.0, "2.50km")],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected


def test_coords_and_maps_link():
    p = _p(41.0151371, 28.9795304)
    assert coords_text(p) == "41.01514, 28.97953"
    assert maps_link(p) == "https://www.google.com/maps?q=41.0151371,28.9795304"
