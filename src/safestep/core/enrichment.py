"""
Alarm metni zenginleştirme.

Akış (alarm başına, tek deneme, retry yok):
  1) describe(pos)  -> insan okunur adres / yer işareti
  2) compose(...)   -> SMS uzunluğunda alarm metni
Her aşamanın deterministik bir yedeği (fallback) vardır; hata çağırana taşınmaz.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from ..utils.geo import coords_text, maps_link
from .models import Position, SafetyConfig

logger = logging.getLogger(__name__)

FALLBACK_TIP = "Keep a recent photo of the patient available at all times."


class LocationDescriber(Protocol):
    async def describe(self, pos: Position) -> str: ...


class MessageComposer(Protocol):
    async def compose(
        self,
        name: str,
        pos: Position,
        config: SafetyConfig,
        distance_m: float,
        description: str,
    ) -> str: ...


class TipProvider(Protocol):
    async def tip(self, recent: Sequence[Position]) -> str: ...


def fallback_description(pos: Position) -> str:
    return f"at coordinates {coords_text(pos)}"


def fallback_message(name: str, pos: Position, distance_m: float, description: str) -> str:
    return (
        f"ALERT: {name} is outside safety zone ({distance_m:.0f}m away). "
        f"Location: {description}. {maps_link(pos)}"
    )


async def _attempt(stage: str, call, timeout_sec: float | None) -> str | None:
    """Tek bir yetenek çağrısı; başarısızlıkta None (loglanır)."""
    try:
        text = await asyncio.wait_for(call(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        logger.warning("%s zaman aşımı (%ss), yedek metin kullanılacak", stage, timeout_sec)
        return None
    except Exception as e:  # servis hatası yerel kalır
        logger.warning("%s başarısız: %s", stage, e)
        return None
    if not isinstance(text, str) or not text.strip():
        logger.warning("%s boş yanıt döndü, yedek metin kullanılacak", stage)
        return None
    return text.strip()


class AlertEnricher:
    def __init__(
        self,
        describer: LocationDescriber | None = None,
        composer: MessageComposer | None = None,
        timeout_sec: float | None = 15.0,
    ):
        self.describer = describer
        self.composer = composer
        self.timeout_sec = timeout_sec

    async def describe(self, pos: Position) -> str:
        text = None
        if self.describer is not None:
            text = await _attempt("describe", lambda: self.describer.describe(pos), self.timeout_sec)
        return text or fallback_description(pos)

    async def compose(
        self, name: str, pos: Position, config: SafetyConfig, distance_m: float, description: str
    ) -> str:
        text = None
        if self.composer is not None:
            text = await _attempt(
                "compose",
                lambda: self.composer.compose(name, pos, config, distance_m, description),
                self.timeout_sec,
            )
        return text or fallback_message(name, pos, distance_m, description)

    async def enrich(self, name: str, pos: Position, config: SafetyConfig, distance_m: float) -> str:
        description = await self.describe(pos)
        return await self.compose(name, pos, config, distance_m, description)


class TipAdvisor:
    def __init__(self, provider: TipProvider | None = None, timeout_sec: float | None = 15.0):
        self.provider = provider
        self.timeout_sec = timeout_sec

    async def advise(self, recent: Sequence[Position]) -> str:
        text = None
        if self.provider is not None:
            text = await _attempt("tip", lambda: self.provider.tip(tuple(recent)), self.timeout_sec)
        return text or FALLBACK_TIP
