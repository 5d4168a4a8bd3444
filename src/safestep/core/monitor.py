"""
Geofence izleme durum makinesi.

Tek giriş noktası: on_position_sample(pos)
  1) Doğruluk filtresi (ilk örnek her zaman kabul)
  2) Geçmişe ekle, current_position güncelle, is_tracking = True
  3) Ev noktası varsa mesafe + sınıflandırma
  4) SAFE değilse ve cooldown izin veriyorsa: zaman damgası hemen işaretlenir,
     zenginleştirme arka planda çalışır, sonuç AlertRecord olarak eklenir
  5) Her 8. kabul edilen örnekte güvenlik ipucu yenilenir (fire-and-forget)

SAFE/WANDERING/CRITICAL her örnekte sıfırdan hesaplanır; kalıcı "alarm modu" yoktur.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from ..utils.geo import distance_m
from .config import Config
from .enrichment import AlertEnricher, TipAdvisor, fallback_description, fallback_message
from .geofence import ALERT_COOLDOWN_MS, AlertCooldown, classify
from .history import HISTORY_CAPACITY, HistoryBuffer
from .models import AlertRecord, Position, SafetyConfig, Severity, now_ms

logger = logging.getLogger(__name__)

AlertListener = Callable[[AlertRecord], None]


@dataclass(frozen=True)
class MonitorState:
    current_position: Position | None
    history: tuple[Position, ...]
    config: SafetyConfig
    alerts: tuple[AlertRecord, ...]
    is_tracking: bool
    # yalnız gösterim amaçlı; alarm kararına girmez
    distance_m: float | None = None
    severity: Severity | None = None
    safety_tip: str = "Initializing..."


@dataclass(frozen=True)
class _Trigger:
    """Tetikleme anında sabitlenen bağlam; tamamlanma sırası bunu değiştirmez."""

    seq: int
    alert_id: str
    created_at_ms: int
    position: Position
    config: SafetyConfig
    distance_m: float
    severity: Severity


class GeofenceMonitor:
    def __init__(
        self,
        config: SafetyConfig | None = None,
        enricher: AlertEnricher | None = None,
        tips: TipAdvisor | None = None,
        *,
        subject_name: str = "Patient",
        history_capacity: int = HISTORY_CAPACITY,
        max_accuracy_m: float = 100.0,
        cooldown_ms: int = ALERT_COOLDOWN_MS,
        tip_every: int = 8,
        tip_window: int = 5,
        clock: Callable[[], int] = now_ms,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.enricher = enricher or AlertEnricher()
        self.tips = tips or TipAdvisor()
        self.subject_name = subject_name
        self.max_accuracy_m = max_accuracy_m
        self.tip_every = tip_every
        self.tip_window = tip_window
        self._clock = clock
        self._loop = loop

        self._lock = Lock()
        self._config = config or SafetyConfig()
        self._current: Position | None = None
        self._history = HistoryBuffer(history_capacity)
        self._alerts: list[AlertRecord] = []
        self._tracking = False
        self._distance: float | None = None
        self._severity: Severity | None = None
        self._cooldown = AlertCooldown(cooldown_ms)

        self._accepted = 0
        self._trigger_seq = 0
        self._next_commit = 0
        self._ready: dict[int, AlertRecord] = {}
        self._tip = "Initializing..."
        self._tip_seq = 0
        self._tip_applied = 0

        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[AlertListener] = []

    @classmethod
    def from_config(
        cls, cfg: Config, enricher: AlertEnricher | None = None, tips: TipAdvisor | None = None, **kw
    ) -> GeofenceMonitor:
        return cls(
            cfg.safety_config(),
            enricher,
            tips,
            subject_name=cfg.subject_name,
            history_capacity=cfg.history_capacity,
            max_accuracy_m=cfg.max_accuracy_m,
            cooldown_ms=cfg.alert_cooldown_ms,
            tip_every=cfg.tip_every,
            tip_window=cfg.tip_window,
            **kw,
        )

    # -------------------- okuma --------------------

    @property
    def state(self) -> MonitorState:
        with self._lock:
            return MonitorState(
                current_position=self._current,
                history=self._history.snapshot(),
                config=self._config,
                alerts=tuple(self._alerts),
                is_tracking=self._tracking,
                distance_m=self._distance,
                severity=self._severity,
                safety_tip=self._tip,
            )

    @property
    def config(self) -> SafetyConfig:
        return self._config

    @property
    def last_alert_ms(self) -> int | None:
        return self._cooldown.last_fired_ms

    # -------------------- konum akışı --------------------

    def on_position_sample(self, pos: Position) -> bool:
        """
        Returns:
          True: örnek kabul edildi; False: gürültü olarak atıldı.
        """
        loop = self._event_loop()

        with self._lock:
            if (
                self._current is not None
                and pos.accuracy is not None
                and pos.accuracy > self.max_accuracy_m
            ):
                logger.debug("Düşük doğruluklu örnek atıldı (±%.0fm)", pos.accuracy)
                return False

            self._history.append(pos)
            self._current = pos
            self._tracking = True
            self._accepted += 1

            trigger = None
            cfg = self._config
            if cfg.home is None:
                # ev noktası yok → sınıflandırma yapılmaz
                self._distance = None
                self._severity = None
            else:
                d = distance_m(pos, cfg.home)
                sev = classify(d, cfg.radius_m)
                self._distance, self._severity = d, sev
                if sev is not Severity.SAFE:
                    now = self._clock()
                    if self._cooldown.try_fire(now):
                        trigger = _Trigger(
                            seq=self._trigger_seq,
                            alert_id=uuid.uuid4().hex,
                            created_at_ms=now,
                            position=pos,
                            config=cfg,
                            distance_m=d,
                            severity=sev,
                        )
                        self._trigger_seq += 1

            tip_recent = None
            tip_seq = 0
            if self.tip_every > 0 and self._accepted % self.tip_every == 0:
                self._tip_seq += 1
                tip_seq = self._tip_seq
                tip_recent = self._history.recent(self.tip_window)

        if trigger is not None:
            logger.info(
                "Güvenli bölge dışı: %.0fm (r=%gm) → %s alarmı tetiklendi",
                trigger.distance_m,
                trigger.config.radius_m,
                trigger.severity.value,
            )
            self._spawn(loop, self._deliver(trigger))
        if tip_recent is not None:
            self._spawn(loop, self._refresh_tip(tip_seq, tip_recent))
        return True

    def report_sensor_error(self, error: object) -> None:
        logger.error("Konum sağlayıcı hatası: %s", error)

    # -------------------- ayarlar --------------------

    def apply_config(self, config: SafetyConfig) -> None:
        if not isinstance(config, SafetyConfig):
            raise TypeError(f"SafetyConfig bekleniyordu: {type(config).__name__}")
        with self._lock:
            self._config = config
        logger.info(
            "Ayarlar uygulandı: home=%s r=%gm",
            None if config.home is None else (config.home.lat, config.home.lng),
            config.radius_m,
        )

    def set_home_here(self) -> bool:
        with self._lock:
            if self._current is None:
                return False
            self._config = self._config.with_home(self._current)
        return True

    def pick_home(self, lat: float, lng: float) -> Position:
        home = Position(lat=lat, lng=lng, captured_at_ms=self._clock())
        with self._lock:
            self._config = self._config.with_home(home)
        return home

    # -------------------- alarm dağıtımı --------------------

    def add_alert_listener(self, listener: AlertListener) -> None:
        self._listeners.append(listener)

    async def drain(self) -> None:
        """Uçuştaki tüm zenginleştirme / ipucu görevlerinin bitmesini bekler."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None:
                raise RuntimeError(
                    "GeofenceMonitor çalışan bir event loop içinde ya da loop= ile kullanılmalı"
                ) from None
            return self._loop

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._track(loop.create_task(coro))
        else:
            # sensör callback'i başka bir thread'den geliyor
            loop.call_soon_threadsafe(lambda: self._track(loop.create_task(coro)))

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, trigger: _Trigger) -> None:
        try:
            message = await self.enricher.enrich(
                self.subject_name, trigger.position, trigger.config, trigger.distance_m
            )
        except Exception:
            logger.exception("Zenginleştirme beklenmedik şekilde başarısız oldu")
            message = fallback_message(
                self.subject_name,
                trigger.position,
                trigger.distance_m,
                fallback_description(trigger.position),
            )
        record = AlertRecord(
            id=trigger.alert_id,
            created_at_ms=trigger.created_at_ms,
            message=message,
            location=trigger.position,
            severity=trigger.severity,
        )
        self._commit(trigger.seq, record)

    def _commit(self, seq: int, record: AlertRecord) -> None:
        # tetikleme sırasıyla eklenir; önce biten sonraki alarm, öncekileri bekler
        committed = []
        with self._lock:
            self._ready[seq] = record
            while self._next_commit in self._ready:
                rec = self._ready.pop(self._next_commit)
                self._alerts.append(rec)
                committed.append(rec)
                self._next_commit += 1
            phone = self._config.caretaker_phone

        for rec in committed:
            logger.info("[REAL-TIME ALERT to %s]: %s", phone or "-", rec.message)
            for listener in list(self._listeners):
                try:
                    listener(rec)
                except Exception:
                    logger.exception("Alarm dinleyicisi başarısız oldu")

    async def _refresh_tip(self, seq: int, recent: tuple[Position, ...]) -> None:
        tip = await self.tips.advise(recent)
        with self._lock:
            # geç dönen eski bir istek yeni ipucunu ezmesin
            if seq > self._tip_applied:
                self._tip = tip
                self._tip_applied = seq
