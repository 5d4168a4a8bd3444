"""Tests for the track replay script."""

import asyncio

import pandas as pd

from replay_track import TrackClock, read_track, replay, to_epoch_ms
from safestep.core.models import Position, SafetyConfig
from safestep.core.monitor import GeofenceMonitor


def test_to_epoch_ms():
    assert to_epoch_ms("1970-01-01T00:00:01Z") == 1000
    assert to_epoch_ms("1970-01-01 00:01:00") == 60_000
    assert to_epoch_ms(1234) == 1234


def test_read_track_renames_and_sorts(tmp_path):
    p = tmp_path / "track.csv"
    pd.DataFrame(
        {
            "timestamp": ["2025-01-01T10:00:30Z", "2025-01-01T10:00:00Z"],
            "lat": [0.001, 0.0],
            "lon": [0.0, 0.0],
        }
    ).to_csv(p, index=False)
    df = read_track(p)
    assert list(df["lat"]) == [0.0, 0.001]
    assert "lng" in df.columns
    assert df["accuracy"].isna().all()


def test_replay_follows_track_clock():
    base = 1_700_000_000_000
    df = pd.DataFrame(
        {
            "lat": [0.0, 0.001, 0.001, 0.001],
            "lng": [0.0, 0.0, 0.0, 0.0],
            "accuracy": [5.0, 5.0, 5.0, 5.0],
            "ts_ms": [base, base + 1_000, base + 11_000, base + 71_000],
        }
    )
    clock = TrackClock()
    mon = GeofenceMonitor(
        SafetyConfig(home=Position(0.0, 0.0, captured_at_ms=base), radius_m=100), clock=clock
    )
    accepted = asyncio.run(replay(df, mon, clock))
    assert accepted == 4
    assert [a.created_at_ms for a in mon.state.alerts] == [base + 1_000, base + 71_000]
