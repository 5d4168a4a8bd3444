from __future__ import annotations

import logging

from ..core.config import Config
from ..core.enrichment import AlertEnricher, TipAdvisor
from .gemini import GeminiClient
from .nominatim import NominatimDescriber

logger = logging.getLogger(__name__)


def build_enrichment(cfg: Config) -> tuple[AlertEnricher, TipAdvisor, str]:
    """
    Config'e göre (enricher, tip advisor, etkin backend adı) üretir.
    gemini  : describe + compose + tip
    nominatim: yalnız describe; compose/tip yedek metin
    offline : hepsi yedek metin
    """
    backend = cfg.backend
    if backend == "gemini" and not cfg.gemini_api_key:
        logger.warning("GEMINI_API_KEY tanımlı değil; offline moda geçiliyor")
        backend = "offline"

    if backend == "gemini":
        gemini = GeminiClient(
            api_key=cfg.gemini_api_key,
            model=cfg.gemini_model,
            describe_model=cfg.gemini_describe_model,
            timeout_sec=cfg.timeout_sec,
        )
        return (
            AlertEnricher(gemini, gemini, timeout_sec=cfg.timeout_sec),
            TipAdvisor(gemini, timeout_sec=cfg.timeout_sec),
            backend,
        )
    if backend == "nominatim":
        describer = NominatimDescriber(
            url=cfg.nominatim_url, user_agent=cfg.user_agent, timeout_sec=cfg.timeout_sec
        )
        return AlertEnricher(describer, None, timeout_sec=cfg.timeout_sec), TipAdvisor(None), backend
    return AlertEnricher(), TipAdvisor(), "offline"
