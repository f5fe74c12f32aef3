import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

import config
from schedules import messages
from schedules.events import ScheduleUpdate
from schedules.model import NotificationStage, Occurrence, Schedule
from schedules.resolver import resolve
from schedules.store import ScheduleStore
from schedules.tracker import NotificationTracker

logger = logging.getLogger(__name__)

TICK_SECONDS = 60
# Own-source saves with these reasons re-arm the clock wholesale
RESTART_REASONS = ("import", "bulk")


@dataclass(frozen=True)
class VoiceOptions:
    speaker_id: int = config.NOTIFICATION_SPEAKER_ID
    speed_scale: float = 1.0


@dataclass(frozen=True)
class ScheduleSnapshot:
    schedule: dict
    occurrence: Occurrence | None
    stage: NotificationStage

    def to_dict(self) -> dict:
        return {
            "schedule": self.schedule,
            "next_occurrence": self.occurrence.date_time.isoformat() if self.occurrence else None,
            "occurrence_key": self.occurrence.key if self.occurrence else None,
            "status": self.stage.value,
        }


@dataclass
class PassResult:
    fired: list = field(default_factory=list)
    dirty: bool = False
    failed: list = field(default_factory=list)


def seconds_to_next_minute(now: datetime) -> float:
    return TICK_SECONDS - now.second - now.microsecond / 1_000_000


def first_upcoming(snapshot: list[ScheduleSnapshot], now: datetime | None = None) -> ScheduleSnapshot | None:
    """Primer evento del estado publicado (ya ordenado) que aun no ha pasado."""
    floor = (now or datetime.now()).replace(second=0, microsecond=0)
    for item in snapshot:
        if item.occurrence is not None and item.occurrence.date_time >= floor:
            return item
    return None


def upcoming_label(snapshot: list[ScheduleSnapshot], now: datetime | None = None) -> str | None:
    upcoming = first_upcoming(snapshot, now)
    if upcoming is None:
        return None
    return f"{upcoming.occurrence.key} {upcoming.schedule['time']} {upcoming.schedule['title']}"


class NotificationClock:
    """Reloj de avisos alineado al minuto.

    Cada pasada resuelve la ocurrencia de todos los eventos, reconcilia su
    estado y dispara la previa (``lead_minutes`` antes, solo en el limite de
    minuto) y el inicio (en el limite de minuto, o dentro de la ventana de
    gracia si el tick llego tarde). Al final guarda la coleccion una sola vez.
    """

    def __init__(self, store: ScheduleStore, notifier, playback,
                 tracker: NotificationTracker | None = None,
                 lead_minutes: int = config.LEAD_MINUTES,
                 on_snapshot: Callable[[list[ScheduleSnapshot]], None] | None = None):
        self.store = store
        self.notifier = notifier
        self.playback = playback
        self.tracker = tracker or NotificationTracker()
        self.lead_minutes = lead_minutes
        self.on_snapshot = on_snapshot
        self.snapshot: list[ScheduleSnapshot] = []
        self._task: asyncio.Task | None = None
        self.store.events.subscribe(self._on_update)

    def _on_update(self, update: ScheduleUpdate):
        """Cambios externos o importaciones: recalcula sin esperar al siguiente minuto.

        El store ya recargo la coleccion (se suscribio antes que el reloj).
        """
        if update.source == self.store.source and update.reason not in RESTART_REASONS:
            return
        if self.running:
            self.restart()
        else:
            self.refresh()

    def close(self):
        self.stop()
        self.store.events.unsubscribe(self._on_update)

    # -- Timer --

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Pasada inicial inmediata (sin previas) y arranque del ciclo por minuto."""
        self.stop()
        self.run_pass(bootstrap=True)
        self._task = asyncio.get_running_loop().create_task(self._run(), name="notification-clock")
        logger.info("Reloj de avisos iniciado (previa %d min)", self.lead_minutes)

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def restart(self):
        logger.info("Reiniciando reloj de avisos")
        self.start()

    async def _run(self):
        while True:
            # Re-align to the wall-clock minute every iteration
            await asyncio.sleep(seconds_to_next_minute(datetime.now()))
            try:
                self.run_pass()
            except Exception:
                logger.exception("Error en la pasada del reloj de avisos")

    # -- Evaluation --

    def run_pass(self, now: datetime | None = None, bootstrap: bool = False) -> PassResult:
        now = now or datetime.now()
        tick_floor = now.replace(second=0, microsecond=0)
        on_boundary = now.second == 0
        cooldown = self.tracker.cooldown
        result = PassResult()
        snapshot = []

        for schedule in self.store.items():
            try:
                occurrence = resolve(schedule, now)
                if occurrence is None:
                    logger.warning("Evento %s sin ocurrencia valida; se omite", schedule.id)
                    snapshot.append(ScheduleSnapshot(schedule.to_dict(), None, schedule.stage))
                    continue

                if self.tracker.reconcile(schedule, occurrence, now):
                    result.dirty = True

                minutes_left = math.floor((occurrence.date_time - tick_floor).total_seconds() / 60)
                time_diff = occurrence.date_time - now

                if (not bootstrap and on_boundary and minutes_left == self.lead_minutes
                        and not schedule.pre_notified):
                    self.tracker.mark_lead(schedule)
                    result.dirty = True
                    self._fire_lead(schedule, occurrence)
                    result.fired.append((schedule.id, NotificationStage.LEAD_FIRED))

                in_grace = -cooldown < time_diff <= timedelta(0)
                if ((on_boundary and minutes_left == 0) or in_grace) and not schedule.start_notified:
                    self.tracker.mark_start(schedule)
                    result.dirty = True
                    self._fire_start(schedule)
                    result.fired.append((schedule.id, NotificationStage.START_FIRED))

                snapshot.append(ScheduleSnapshot(schedule.to_dict(), occurrence, schedule.stage))
            except Exception:
                logger.exception("Error evaluando el evento %s", schedule.id)
                result.failed.append(schedule.id)

        if result.dirty:
            self.store.save("notifications")

        self._publish(snapshot, now)
        return result

    def refresh(self, now: datetime | None = None) -> list[ScheduleSnapshot]:
        """Recalcula el estado visible sin tocar avisos ni persistencia."""
        now = now or datetime.now()
        snapshot = []
        for schedule in self.store.items():
            try:
                occurrence = resolve(schedule, now)
            except Exception:
                logger.exception("Error resolviendo el evento %s", schedule.id)
                occurrence = None
            snapshot.append(ScheduleSnapshot(schedule.to_dict(), occurrence, schedule.stage))
        self._publish(snapshot, now)
        return self.snapshot

    def _publish(self, snapshot: list[ScheduleSnapshot], now: datetime):
        snapshot.sort(key=lambda s: (s.occurrence is None, s.occurrence.date_time if s.occurrence else now))
        self.snapshot = snapshot
        if self.on_snapshot is not None:
            try:
                self.on_snapshot(snapshot)
            except Exception as e:
                logger.warning("Error publicando el estado de eventos: %s", e)

    def next_upcoming(self, now: datetime | None = None) -> ScheduleSnapshot | None:
        return first_upcoming(self.snapshot, now)

    # -- Firing --

    def _notify(self, title: str, body: str):
        try:
            self.notifier.notify(title, body)
        except Exception as e:
            logger.warning("No se pudo mostrar la notificacion: %s", e)

    def _fire_lead(self, schedule: Schedule, occurrence: Occurrence):
        logger.info("Previa de '%s' (%s %s)", schedule.title, occurrence.key, schedule.time)
        self._notify(*messages.lead_notification(schedule, occurrence, self.lead_minutes))
        self.playback.enqueue(
            messages.lead_message(schedule, self.lead_minutes),
            VoiceOptions(speed_scale=config.LEAD_SPEED_SCALE),
        )

    def _fire_start(self, schedule: Schedule):
        logger.info("Inicio de '%s' (%s %s)", schedule.title, schedule.occurrence_key, schedule.time)
        self._notify(*messages.start_notification(schedule))
        self.playback.enqueue(
            messages.start_message(schedule),
            VoiceOptions(speed_scale=config.START_SPEED_SCALE),
        )
