from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from math import atan2, cos, degrees, radians, sin

from ..utils.geo import distance_m
from .models import Position


def _bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    φ1, φ2 = radians(lat1), radians(lat2)
    dλ = radians(lon2 - lon1)
    y = sin(dλ) * cos(φ2)
    x = cos(φ1) * sin(φ2) - sin(φ1) * cos(φ2) * cos(dλ)
    return (degrees(atan2(y, x)) + 360.0) % 360.0


@dataclass
class MovementSummary:
    points: int = 0
    path_m: float = 0.0
    elapsed_sec: float = 0.0
    avg_speed_mps: float = 0.0
    bearing_deg: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def summarize(recent: Sequence[Position]) -> MovementSummary:
    """
    Son birkaç noktadan (path, süre, ortalama hız, son yön) özetini çıkarır.
    İpucu (tip) üretimine bağlam olarak verilir.
    """
    if len(recent) < 2:
        return MovementSummary(points=len(recent))

    path = 0.0
    for prev, cur in zip(recent, recent[1:]):
        path += distance_m(prev, cur)

    first, last = recent[0], recent[-1]
    dt = (last.captured_at_ms - first.captured_at_ms) / 1000.0
    speed = path / dt if dt > 0 else 0.0  # zaman geri gitmişse hız hesaplanmaz

    prev = recent[-2]
    brg = None
    if (prev.lat, prev.lng) != (last.lat, last.lng):
        brg = _bearing_deg(prev.lat, prev.lng, last.lat, last.lng)

    return MovementSummary(
        points=len(recent),
        path_m=path,
        elapsed_sec=max(dt, 0.0),
        avg_speed_mps=speed,
        bearing_deg=brg,
    )
