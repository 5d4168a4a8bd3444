"""Tests for the HTTP-backed enrichment capabilities."""

import json

import httpx
import pytest

from safestep.backends.gemini import GeminiClient, grounding_map_uri, response_text
from safestep.backends.nominatim import NominatimDescriber
from safestep.backends.registry import build_enrichment
from safestep.core.config import Config
from safestep.core.enrichment import AlertEnricher, fallback_description
from safestep.core.models import Position, SafetyConfig

POS = Position(41.0151, 28.9795, accuracy=8, captured_at_ms=1_700_000_000_000)


def _gemini_reply(text, uri=None):
    cand = {"content": {"parts": [{"text": text}]}}
    if uri:
        cand["groundingMetadata"] = {"groundingChunks": [{"web": {}}, {"maps": {"uri": uri}}]}
    return {"candidates": [cand]}


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_response_parsing_edge_cases():
    assert response_text({}) == ""
    assert response_text({"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}) == "ab"
    assert grounding_map_uri({"candidates": [{}]}) is None


@pytest.mark.asyncio
async def test_gemini_describe_uses_maps_grounding():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply("Sultanahmet Square", "https://maps.google.com/?cid=1"))

    async with _client(handler) as client:
        gemini = GeminiClient("secret", describe_model="gemini-2.5-flash", client=client)
        text = await gemini.describe(POS)

    assert text == "Sultanahmet Square (Details: https://maps.google.com/?cid=1)"
    assert "models/gemini-2.5-flash:generateContent" in seen["url"]
    assert "key=secret" in seen["url"]
    assert seen["body"]["tools"] == [{"googleMaps": {}}]
    assert seen["body"]["toolConfig"]["retrievalConfig"]["latLng"] == {
        "latitude": 41.0151,
        "longitude": 28.9795,
    }


@pytest.mark.asyncio
async def test_gemini_compose_prompt_carries_context():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply("ALERT: Patient 150m from home"))

    cfg = SafetyConfig(home=POS, radius_m=100)
    async with _client(handler) as client:
        text = await GeminiClient("k", client=client).compose("Patient", POS, cfg, 150.4, "Main St")

    prompt = seen["body"]["contents"][0]["parts"][0]["text"]
    assert text == "ALERT: Patient 150m from home"
    assert "Distance from Home: 150 meters." in prompt
    assert "Safety Radius: 100m." in prompt
    assert "https://www.google.com/maps?q=41.0151,28.9795" in prompt
    assert "under 160 characters" in prompt


@pytest.mark.asyncio
async def test_gemini_tip_sends_history():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply("Check the garden gate."))

    async with _client(handler) as client:
        tip = await GeminiClient("k", client=client).tip([POS, POS])

    assert tip == "Check the garden gate."
    assert "Movement history:" in seen["body"]["contents"][0]["parts"][0]["text"]


@pytest.mark.asyncio
async def test_gemini_http_error_degrades_to_fallback():
    def handler(request):
        return httpx.Response(503, json={"error": {"message": "overloaded"}})

    async with _client(handler) as client:
        gemini = GeminiClient("k", client=client)
        with pytest.raises(httpx.HTTPStatusError):
            await gemini.describe(POS)
        assert await AlertEnricher(gemini, gemini).describe(POS) == fallback_description(POS)


@pytest.mark.asyncio
async def test_nominatim_describe():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, json={"display_name": "Divan Yolu Cd., Fatih, İstanbul"})

    async with _client(handler) as client:
        nom = NominatimDescriber(user_agent="safestep-test", client=client)
        text = await nom.describe(POS)

    assert text == "Divan Yolu Cd., Fatih, İstanbul"
    assert seen["params"]["lat"] == "41.0151"
    assert seen["params"]["lon"] == "28.9795"
    assert seen["ua"] == "safestep-test"


@pytest.mark.asyncio
async def test_nominatim_error_payload_raises():
    def handler(request):
        return httpx.Response(200, json={"error": "Unable to geocode"})

    async with _client(handler) as client:
        with pytest.raises(ValueError):
            await NominatimDescriber(client=client).describe(POS)


def test_registry_without_key_goes_offline(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("SAFESTEP_BACKEND", raising=False)
    enricher, tips, backend = build_enrichment(Config({"enrichment": {"backend": "gemini"}}))
    assert backend == "offline"
    assert enricher.describer is None and enricher.composer is None
    assert tips.provider is None


def test_registry_selects_backends(monkeypatch):
    monkeypatch.delenv("SAFESTEP_BACKEND", raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    enricher, tips, backend = build_enrichment(Config({}))
    assert backend == "gemini"
    assert isinstance(enricher.describer, GeminiClient)
    assert tips.provider is enricher.composer

    enricher, tips, backend = build_enrichment(Config({"enrichment": {"backend": "nominatim"}}))
    assert backend == "nominatim"
    assert isinstance(enricher.describer, NominatimDescriber)
    assert enricher.composer is None
