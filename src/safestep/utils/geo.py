from __future__ import annotations

from datetime import datetime
from math import asin, cos, radians, sin, sqrt
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models import Position

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """İki GPS noktası arası Haversine mesafesi (metre)."""
    la1, lo1, la2, lo2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = la2 - la1
    dlon = lo2 - lo1
    a = sin(dlat / 2) ** 2 + cos(la1) * cos(la2) * sin(dlon / 2) ** 2
    # yuvarlama hatası a'yı 1'in üstüne taşıyabilir (antipod noktalar)
    c = 2 * asin(sqrt(min(1.0, a)))
    return EARTH_RADIUS_M * c


def distance_m(a: Position, b: Position) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.2f}km"


def format_time(ts_ms: int) -> str:
    """Epoch milisaniyeyi yerel saatte HH:MM:SS olarak döndürür."""
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%H:%M:%S")


def coords_text(pos: Position) -> str:
    return f"{pos.lat:.5f}, {pos.lng:.5f}"


def maps_link(pos: Position) -> str:
    return f"https://www.google.com/maps?q={pos.lat},{pos.lng}"
