"""Tests for the movement summary fed to safety tips."""

import pytest

from safestep.core.models import Position
from safestep.core.movement import summarize


def test_too_few_points():
    s = summarize([Position(0, 0, captured_at_ms=0)])
    assert s.points == 1
    assert s.path_m == 0.0
    assert s.bearing_deg is None


def test_northbound_walk():
    track = [Position(i * 0.0001, 0.0, captured_at_ms=i * 10_000) for i in range(5)]
    s = summarize(track)
    assert s.points == 5
    assert s.path_m == pytest.approx(44.48, abs=0.05)
    assert s.elapsed_sec == 40.0
    assert s.avg_speed_mps == pytest.approx(s.path_m / 40.0)
    assert s.bearing_deg == pytest.approx(0.0, abs=1e-6)


def test_eastbound_bearing_and_backwards_time():
    track = [Position(0.0, 0.0, captured_at_ms=5_000), Position(0.0, 0.001, captured_at_ms=1_000)]
    s = summarize(track)
    assert s.bearing_deg == pytest.approx(90.0)
    assert s.avg_speed_mps == 0.0
    assert s.elapsed_sec == 0.0
