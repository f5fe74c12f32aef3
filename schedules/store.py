import logging
from datetime import datetime

from schedules.errors import InvalidScheduleInput, ScheduleNotFound
from schedules.events import ScheduleEvents, ScheduleUpdate
from schedules.model import NotificationStage, Schedule, normalize_schedule, now_millis, parse_time
from schedules.persistence import ScheduleBridge
from schedules.resolver import resolve

logger = logging.getLogger(__name__)

STORE_SOURCE = "schedule-store"


class ScheduleStore:
    """Coleccion de eventos en memoria, propiedad del motor.

    Toda mutacion pasa por aqui: normaliza, guarda la coleccion completa y
    avisa por el bus de eventos. Los avisos de otros origenes provocan una
    recarga desde la persistencia; los propios se ignoran.
    """

    def __init__(self, bridge: ScheduleBridge, events: ScheduleEvents | None = None,
                 source: str = STORE_SOURCE):
        self.bridge = bridge
        self.events = events or ScheduleEvents()
        self.source = source
        self._schedules: list[Schedule] = []
        self.events.subscribe(self._on_update)

    def _on_update(self, update: ScheduleUpdate):
        if update.source == self.source:
            return
        logger.info("Eventos modificados por %s (%s); recargando", update.source, update.reason)
        self.reload()

    # -- Reads --

    def items(self) -> list[Schedule]:
        return list(self._schedules)

    def __len__(self) -> int:
        return len(self._schedules)

    def get(self, schedule_id: int) -> Schedule:
        for schedule in self._schedules:
            if schedule.id == schedule_id:
                return schedule
        raise ScheduleNotFound(schedule_id)

    # -- Loading --

    def load(self) -> list[Schedule]:
        self._schedules = self.bridge.load()
        if self._init_repeat_state():
            self.save("init")
        logger.info("Cargados %d eventos", len(self._schedules))
        return self.items()

    def reload(self):
        self._schedules = self.bridge.load()
        self._init_repeat_state()

    def _init_repeat_state(self, now: datetime | None = None) -> bool:
        now = now or datetime.now()
        updated = False
        for schedule in self._schedules:
            if schedule.repeat is not None and not schedule.occurrence_key:
                occurrence = resolve(schedule, now)
                if occurrence is not None:
                    schedule.track(occurrence.key, schedule.stage)
                    updated = True
        return updated

    # -- Mutations --

    def _next_ids(self, count: int) -> list[int]:
        taken = {schedule.id for schedule in self._schedules}
        base = now_millis()
        ids = []
        candidate = base
        while len(ids) < count:
            if candidate not in taken:
                ids.append(candidate)
                taken.add(candidate)
            candidate += 1
        return ids

    def _prepare_new(self, entry: dict, schedule_id: int) -> Schedule:
        if not isinstance(entry, dict):
            raise InvalidScheduleInput("Evento con formato no valido")
        if parse_time(entry.get("time")) is None:
            raise InvalidScheduleInput(f"Hora no valida: {entry.get('time')!r}")
        data = dict(entry)
        for key in ("id", "stage", "notified", "pre_notified", "start_notified", "preNotified",
                    "startNotified", "last_occurrence_key", "lastOccurrenceKey"):
            data.pop(key, None)
        data["id"] = schedule_id
        return normalize_schedule(data)

    def add(self, entry: dict, reason: str = "add") -> Schedule:
        return self.bulk_add([entry], reason=reason)[0]

    def bulk_add(self, entries: list[dict], reason: str = "import") -> list[Schedule]:
        if not entries:
            return []
        ids = self._next_ids(len(entries))
        additions = [self._prepare_new(entry, schedule_id) for entry, schedule_id in zip(entries, ids)]
        self._schedules.extend(additions)
        self._init_repeat_state()
        self.save(reason)
        logger.info("Agregados %d eventos (%s)", len(additions), reason)
        return additions

    def update(self, schedule_id: int, values: dict) -> Schedule:
        current = self.get(schedule_id)
        if "time" in values and parse_time(values.get("time")) is None:
            raise InvalidScheduleInput(f"Hora no valida: {values.get('time')!r}")

        merged = current.to_dict()
        merged.update(values)
        merged["id"] = schedule_id
        merged["created_at"] = current.created_at
        merged["updated_at"] = now_millis()
        for key in ("stage", "pre_notified", "start_notified", "last_occurrence_key"):
            merged.pop(key, None)
        updated = normalize_schedule(merged)

        # An edit may move the occurrence, so tracking starts over
        updated.track(None if updated.repeat else updated.date, NotificationStage.PENDING)

        index = self._schedules.index(current)
        self._schedules[index] = updated
        self._init_repeat_state()
        self.save("update")
        return updated

    def delete(self, schedule_id: int) -> Schedule:
        schedule = self.get(schedule_id)
        self._schedules.remove(schedule)
        self.save("delete")
        return schedule

    def save(self, reason: str = "save") -> bool:
        saved = self.bridge.save_all(self._schedules)
        self.events.emit(self.source, reason)
        return saved
