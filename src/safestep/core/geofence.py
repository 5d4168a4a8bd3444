# src/safestep/core/geofence.py
from __future__ import annotations

from threading import Lock

from .models import Severity

ALERT_COOLDOWN_MS = 60_000


def classify(distance_m: float, radius_m: float) -> Severity:
    """
    distance <= r          -> SAFE
    r < distance <= 2r     -> WANDERING
    distance > 2r          -> CRITICAL
    """
    if distance_m <= radius_m:
        return Severity.SAFE
    if distance_m <= 2 * radius_m:
        return Severity.WANDERING
    return Severity.CRITICAL


def should_fire(now_ms: int, last_fired_ms: int | None, cooldown_ms: int = ALERT_COOLDOWN_MS) -> bool:
    # None = hiç alarm üretilmedi
    if last_fired_ms is None:
        return True
    return now_ms - last_fired_ms > cooldown_ms


class AlertCooldown:
    """
    Süreç genelinde tek "son alarm zamanı" tutar.

    Not:
      - Zaman damgası zenginleştirme (enrichment) başlamadan önce işaretlenir;
        yavaş bir servis döndüğünde alarm patlaması olmaz.
      - Ev yarıçapı içine dönmek sayacı sıfırlamaz.
    """

    def __init__(self, cooldown_ms: int = ALERT_COOLDOWN_MS):
        self.cooldown_ms = cooldown_ms
        self.last_fired_ms: int | None = None
        self._lock = Lock()

    def try_fire(self, now_ms: int) -> bool:
        """
        Returns:
          True ise pencere dolmuş, zaman damgası now_ms olarak güncellendi.
        """
        with self._lock:
            if not should_fire(now_ms, self.last_fired_ms, self.cooldown_ms):
                return False
            self.last_fired_ms = now_ms
            return True
