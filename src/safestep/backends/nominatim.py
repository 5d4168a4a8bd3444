"""OpenStreetMap Nominatim ters geocoding ile konum tarifi."""

from __future__ import annotations

import httpx

from ..core.models import Position

NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"


class NominatimDescriber:
    def __init__(
        self,
        url: str = NOMINATIM_URL,
        user_agent: str = "safestep/0.1",
        timeout_sec: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.headers = {"User-Agent": user_agent}  # Nominatim kullanım politikası gereği
        self.timeout_sec = timeout_sec
        self._client = client

    async def describe(self, pos: Position) -> str:
        params = {"lat": pos.lat, "lon": pos.lng, "format": "jsonv2", "zoom": 18}
        if self._client is not None:
            r = await self._client.get(self.url, params=params, headers=self.headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                r = await client.get(self.url, params=params, headers=self.headers)
        r.raise_for_status()
        data = r.json()
        if "error" in data:
            raise ValueError(f"Nominatim: {data['error']}")
        return str(data.get("display_name", "")).strip()
