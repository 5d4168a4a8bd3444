"""
Gemini REST (generateContent) istemcisi.

Üç yeteneği birden sağlar:
  - describe(pos)  : Google Maps grounding ile adres / yer işareti
  - compose(...)   : SMS alarm metni
  - tip(history)   : bakıcıya tek cümlelik güvenlik ipucu
Hatalar burada yakalanmaz; yedek metne dönüş AlertEnricher/TipAdvisor'ın işidir.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import httpx

from ..core.models import Position, SafetyConfig
from ..core.movement import summarize
from ..utils.geo import maps_link

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DESCRIBE_PROMPT = (
    "What is the exact address or closest landmark at this location? "
    "Be extremely specific for an emergency situation."
)


def response_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts).strip()


def grounding_map_uri(data: dict[str, Any]) -> str | None:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    chunks = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []
    for c in chunks:
        uri = (c.get("maps") or {}).get("uri")
        if uri:
            return uri
    return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-3-flash-preview",
        describe_model: str = "gemini-2.5-flash",
        timeout_sec: float = 15.0,
        client: httpx.AsyncClient | None = None,
        base_url: str = GEMINI_BASE_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.describe_model = describe_model
        self.timeout_sec = timeout_sec
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def _generate(self, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/models/{model}:generateContent"
        params = {"key": self.api_key}
        if self._client is not None:
            r = await self._client.post(url, params=params, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                r = await client.post(url, params=params, json=payload)
        r.raise_for_status()
        return r.json()

    @staticmethod
    def _prompt(text: str) -> dict[str, Any]:
        return {"contents": [{"role": "user", "parts": [{"text": text}]}]}

    async def describe(self, pos: Position) -> str:
        payload = self._prompt(DESCRIBE_PROMPT)
        payload["tools"] = [{"googleMaps": {}}]
        payload["toolConfig"] = {
            "retrievalConfig": {"latLng": {"latitude": pos.lat, "longitude": pos.lng}}
        }
        data = await self._generate(self.describe_model, payload)
        text = response_text(data)
        if not text:
            return ""
        uri = grounding_map_uri(data)
        return f"{text} (Details: {uri})" if uri else text

    async def compose(
        self,
        name: str,
        pos: Position,
        config: SafetyConfig,
        distance_m: float,
        description: str,
    ) -> str:
        prompt = (
            "Generate a concise SMS alert.\n"
            f"Patient: {name}\n"
            f"Detailed Location Context: {description}\n"
            f"Distance from Home: {distance_m:.0f} meters.\n"
            f"Safety Radius: {config.radius_m:g}m.\n"
            f"Map Link: {maps_link(pos)}\n"
            "Keep it under 160 characters."
        )
        data = await self._generate(self.model, self._prompt(prompt))
        return response_text(data)

    async def tip(self, recent: Sequence[Position]) -> str:
        history = [p.to_dict() for p in recent]
        summary = summarize(recent).to_dict()
        prompt = (
            f"Movement history: {json.dumps(history)}. "
            f"Movement summary: {json.dumps(summary)}. "
            "Provide one safety tip for an Alzheimer's caretaker."
        )
        data = await self._generate(self.model, self._prompt(prompt))
        return response_text(data)
