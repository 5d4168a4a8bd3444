from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import Position, SafetyConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
BACKENDS = {"gemini", "nominatim", "offline"}


class Config:
    def __init__(self, d: dict[str, Any]):
        self.raw = d
        m = d.get("monitor", {})
        self.history_capacity = int(m.get("history_capacity", 50))
        self.max_accuracy_m = float(m.get("max_accuracy_m", 100.0))
        self.alert_cooldown_sec = float(m.get("alert_cooldown_sec", 60))
        self.tip_every = int(m.get("tip_every", 8))
        self.tip_window = int(m.get("tip_window", 5))
        self.subject_name = str(m.get("subject_name", "Patient"))

        s = d.get("safety", {})
        self.radius_m = float(s.get("radius_m", 100.0))
        self.caretaker_phone = str(s.get("caretaker_phone", ""))
        self.caretaker_name = str(s.get("caretaker_name", "Caretaker"))
        h = s.get("home")
        self.home = (float(h["lat"]), float(h["lng"])) if h else None

        e = d.get("enrichment", {})
        self.backend = str(e.get("backend", "gemini")).strip().lower()
        self.timeout_sec = float(e.get("timeout_sec", 15))
        self.gemini_model = str(e.get("gemini_model", "gemini-3-flash-preview"))
        self.gemini_describe_model = str(e.get("gemini_describe_model", "gemini-2.5-flash"))
        self.nominatim_url = str(
            e.get("nominatim_url", "https://nominatim.openstreetmap.org/reverse")
        )
        self.user_agent = str(e.get("user_agent", "safestep/0.1"))
        self.gemini_api_key = e.get("gemini_api_key")

        # Env öncelikli
        backend_env = os.getenv("SAFESTEP_BACKEND", "").strip().lower()
        if backend_env:
            self.backend = backend_env
        self.gemini_api_key = os.getenv("GEMINI_API_KEY") or self.gemini_api_key
        self.log_level = os.getenv("SAFESTEP_LOG_LEVEL", str(d.get("log_level", "INFO"))).upper()

        if self.backend not in BACKENDS:
            raise ValueError(f"Bilinmeyen enrichment backend: {self.backend}")

    @property
    def alert_cooldown_ms(self) -> int:
        return int(self.alert_cooldown_sec * 1000)

    def safety_config(self) -> SafetyConfig:
        home = None
        if self.home is not None:
            home = Position.now(self.home[0], self.home[1])
        return SafetyConfig(
            home=home,
            radius_m=self.radius_m,
            caretaker_phone=self.caretaker_phone,
            caretaker_name=self.caretaker_name,
        )


def load_config(path: str | Path) -> Config:
    p = Path(path)
    if not p.exists():
        return Config({})
    with p.open("r", encoding="utf-8") as f:
        d = json.load(f)
    return Config(d)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
