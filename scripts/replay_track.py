# scripts/replay_track.py
import argparse
import asyncio
import json
import numbers
from datetime import UTC
from pathlib import Path

import pandas as pd
from dateutil import parser as dtp

from safestep.backends.registry import build_enrichment
from safestep.core.config import configure_logging, load_config
from safestep.core.models import Position, SafetyConfig
from safestep.core.monitor import GeofenceMonitor


def to_epoch_ms(ts) -> int:
    """
    Her zaman epoch milisaniye (UTC) döndürür.
    - Sayısal değer -> zaten epoch ms kabul edilir.
    - Naive timestamp -> UTC varsayılır.
    """
    if isinstance(ts, numbers.Number):
        return int(ts)
    dt = dtp.parse(str(ts))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)


def read_track(src: Path) -> pd.DataFrame:
    suffix = src.suffix.lower()
    if suffix == ".parquet":
        df = pd.read_parquet(src)
    elif suffix in {".jsonl", ".json"}:
        df = pd.read_json(src, lines=suffix == ".jsonl")
    else:
        df = pd.read_csv(src)

    if "lng" not in df.columns and "lon" in df.columns:
        df = df.rename(columns={"lon": "lng"})
    for c in ["timestamp", "lat", "lng"]:
        if c not in df.columns:
            raise ValueError(f"Eksik zorunlu kolon: {c}")
    if "accuracy" not in df.columns:
        df["accuracy"] = None

    df = df.dropna(subset=["timestamp", "lat", "lng"])
    df["ts_ms"] = df["timestamp"].map(to_epoch_ms)
    return df.sort_values(by="ts_ms", kind="stable")


class TrackClock:
    """Monitörün saati kaydın zaman damgasını izler (cooldown replay'de anlamlı olsun)."""

    def __init__(self):
        self.now_ms = 0

    def __call__(self) -> int:
        return self.now_ms


async def replay(df: pd.DataFrame, monitor: GeofenceMonitor, clock: TrackClock) -> int:
    accepted = 0
    for _, r in df.iterrows():
        acc = r["accuracy"]
        pos = Position(
            lat=float(r["lat"]),
            lng=float(r["lng"]),
            accuracy=None if pd.isna(acc) else float(acc),
            captured_at_ms=int(r["ts_ms"]),
        )
        clock.now_ms = pos.captured_at_ms
        if monitor.on_position_sample(pos):
            accepted += 1
        await asyncio.sleep(0)  # enrichment görevlerine sıra ver
    await monitor.drain()
    return accepted


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--track", required=True, help="Konum kaydı (CSV/Parquet/JSONL)")
    ap.add_argument("--config", default="configs/config.json")
    ap.add_argument("--home", nargs=2, type=float, metavar=("LAT", "LNG"))
    ap.add_argument("--radius", type=float, default=None, help="metre")
    ap.add_argument("--out", default="data/processed/alerts.jsonl")
    args = ap.parse_args()

    cfg = load_config(args.config)
    configure_logging(cfg.log_level)
    df = read_track(Path(args.track))

    clock = TrackClock()
    enricher, tips, backend = build_enrichment(cfg)
    monitor = GeofenceMonitor.from_config(cfg, enricher, tips, clock=clock)

    sc = monitor.config
    home = sc.home
    if args.home:
        home = Position(args.home[0], args.home[1], captured_at_ms=int(df["ts_ms"].iloc[0]))
    monitor.apply_config(
        SafetyConfig(
            home=home,
            radius_m=args.radius if args.radius is not None else sc.radius_m,
            caretaker_phone=sc.caretaker_phone,
            caretaker_name=sc.caretaker_name,
        )
    )
    if monitor.config.home is None:
        print("[!] Ev noktası tanımlı değil; alarm üretilmeyecek (--home LAT LNG)")

    accepted = asyncio.run(replay(df, monitor, clock))

    alerts = monitor.state.alerts
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        for a in alerts:
            f.write(json.dumps(a.to_dict(), ensure_ascii=False) + "\n")
    print(
        f"[OK] -> {out} | Kayıt: {len(df)} | Kabul: {accepted} | "
        f"Alarm: {len(alerts)} | backend: {backend}"
    )


if __name__ == "__main__":
    main()
