from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from time import time


def now_ms() -> int:
    return int(time() * 1000)


@dataclass(frozen=True)
class Position:
    lat: float
    lng: float
    accuracy: float | None = None  # metre
    captured_at_ms: int = field(default_factory=now_ms)

    @classmethod
    def now(cls, lat: float, lng: float, accuracy: float | None = None) -> Position:
        return cls(lat=lat, lng=lng, accuracy=accuracy, captured_at_ms=now_ms())

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracy": self.accuracy,
            "timestamp": self.captured_at_ms,
        }


class Severity(str, Enum):
    SAFE = "SAFE"
    WANDERING = "WANDERING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class SafetyConfig:
    """
    Bakıcının tanımladığı ev noktası + güvenli yarıçap.
    Motor yalnızca radius_m > 0 varsayar; UI aralığı (20-1000) burada zorlanmaz.
    """

    home: Position | None = None
    radius_m: float = 100.0
    caretaker_phone: str = ""
    caretaker_name: str = "Caretaker"

    def __post_init__(self):
        r = self.radius_m
        if isinstance(r, bool) or not isinstance(r, (int, float)):
            raise ValueError(f"radius_m sayı olmalı: {r!r}")
        if not math.isfinite(r) or r <= 0:
            raise ValueError(f"radius_m pozitif olmalı: {r!r}")

    def with_home(self, home: Position) -> SafetyConfig:
        return replace(self, home=home)


@dataclass(frozen=True)
class AlertRecord:
    id: str
    created_at_ms: int
    message: str
    location: Position
    severity: Severity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.created_at_ms,
            "message": self.message,
            "location": self.location.to_dict(),
            "type": self.severity.value,
        }
