from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..backends.registry import build_enrichment
from ..core.config import Config, configure_logging, load_config
from ..core.models import Position, SafetyConfig
from ..core.monitor import GeofenceMonitor
from ..utils.geo import format_distance, format_time

# -------------------- Pydantic şemaları --------------------


class PositionIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy: float | None = Field(None, ge=0, description="metre")
    timestamp: datetime | None = None


class HomeIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ConfigIn(BaseModel):
    home: HomeIn | None = None
    radius_m: float = Field(..., gt=0)
    caretaker_phone: str = ""
    caretaker_name: str = "Caretaker"


class SensorErrorIn(BaseModel):
    message: str


class PositionOut(BaseModel):
    accepted: bool
    distance_m: float | None = None
    severity: str | None = None


def _position_out(p: Position | None) -> dict | None:
    return None if p is None else p.to_dict()


def _config_out(c: SafetyConfig) -> dict:
    return {
        "home": _position_out(c.home),
        "radius_m": c.radius_m,
        "caretaker_phone": c.caretaker_phone,
        "caretaker_name": c.caretaker_name,
    }


# -------------------- App --------------------


def create_app(cfg: Config, monitor: GeofenceMonitor | None = None) -> FastAPI:
    backend = cfg.backend
    if monitor is None:
        enricher, tips, backend = build_enrichment(cfg)
        monitor = GeofenceMonitor.from_config(cfg, enricher, tips)

    app = FastAPI(title="SafeStep – Geofence izleme ve alarm motoru")
    app.state.monitor = monitor

    @app.get("/health")
    def health():
        st = monitor.state
        return {
            "ok": True,
            "version": "0.1.0",
            "backend": backend,
            "tracking": st.is_tracking,
            "radius_m": st.config.radius_m,
            "home_set": st.config.home is not None,
        }

    # async: enrichment görevleri uygulamanın event loop'unda başlatılır
    @app.post("/position", response_model=PositionOut)
    async def position(inp: PositionIn):
        ts_ms = None
        if inp.timestamp is not None:
            ts_ms = int(inp.timestamp.timestamp() * 1000)
        pos = (
            Position.now(inp.lat, inp.lng, inp.accuracy)
            if ts_ms is None
            else Position(inp.lat, inp.lng, inp.accuracy, ts_ms)
        )
        accepted = monitor.on_position_sample(pos)
        st = monitor.state
        return PositionOut(
            accepted=accepted,
            distance_m=st.distance_m,
            severity=None if st.severity is None else st.severity.value,
        )

    @app.put("/config")
    def put_config(inp: ConfigIn):
        home = None if inp.home is None else Position.now(inp.home.lat, inp.home.lng)
        monitor.apply_config(
            SafetyConfig(
                home=home,
                radius_m=inp.radius_m,
                caretaker_phone=inp.caretaker_phone,
                caretaker_name=inp.caretaker_name,
            )
        )
        return _config_out(monitor.config)

    @app.post("/home/current")
    def home_current():
        if not monitor.set_home_here():
            raise HTTPException(status_code=409, detail="Henüz konum alınmadı")
        return _config_out(monitor.config)

    @app.post("/home")
    def home_pick(inp: HomeIn):
        monitor.pick_home(inp.lat, inp.lng)
        return _config_out(monitor.config)

    @app.get("/state")
    def state():
        st = monitor.state
        return {
            "current": _position_out(st.current_position),
            "history_len": len(st.history),
            "tracking": st.is_tracking,
            "config": _config_out(st.config),
            "distance_m": st.distance_m,
            "distance": None if st.distance_m is None else format_distance(st.distance_m),
            "severity": None if st.severity is None else st.severity.value,
            "alert_count": len(st.alerts),
            "safety_tip": st.safety_tip,
        }

    @app.get("/alerts")
    def alerts():
        return [
            {**a.to_dict(), "time": format_time(a.created_at_ms)} for a in monitor.state.alerts
        ]

    @app.post("/sensor-error", status_code=202)
    def sensor_error(inp: SensorErrorIn):
        monitor.report_sensor_error(inp.message)
        return {"ok": True}

    return app


CFG_PATH = Path(os.getenv("SAFESTEP_CONFIG", "configs/config.json"))
cfg: Config = load_config(CFG_PATH)
configure_logging(cfg.log_level)

app = create_app(cfg)
