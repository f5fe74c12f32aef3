"""Modelo de eventos programados y su normalizacion.

Un ``Schedule`` guarda, ademas de su definicion, el estado de aviso de la
ocurrencia que se esta siguiendo: ``occurrence_key`` y ``stage`` forman una
unidad y solo se escriben juntos mediante ``Schedule.track``.
"""
import re
import time as _time
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

import config
from schedules.repeat import Repeat, normalize_repeat

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class NotificationStage(str, Enum):
    PENDING = "pending"
    LEAD_FIRED = "lead_fired"
    START_FIRED = "start_fired"

    @classmethod
    def from_flags(cls, pre_notified: bool, start_notified: bool) -> "NotificationStage":
        """Ruta de migracion desde el formato de dos booleanos."""
        if start_notified:
            return cls.START_FIRED
        if pre_notified:
            return cls.LEAD_FIRED
        return cls.PENDING

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = (NotificationStage.PENDING, NotificationStage.LEAD_FIRED, NotificationStage.START_FIRED)


@dataclass(frozen=True)
class Occurrence:
    date_time: datetime
    key: str
    is_repeating: bool


@dataclass
class Schedule:
    id: int
    title: str
    date: str
    time: str
    description: str = ""
    repeat: Repeat | None = None
    lead_message: str | None = None
    start_message: str | None = None
    occurrence_key: str | None = None
    stage: NotificationStage = NotificationStage.PENDING
    # Old single "notified" flag, consumed once by the tracker
    legacy_notified: bool = False
    created_at: int = field(default_factory=lambda: now_millis())
    updated_at: int = field(default_factory=lambda: now_millis())

    @property
    def is_repeating(self) -> bool:
        return self.repeat is not None

    @property
    def pre_notified(self) -> bool:
        return self.stage.rank >= NotificationStage.LEAD_FIRED.rank

    @property
    def start_notified(self) -> bool:
        return self.stage is NotificationStage.START_FIRED

    def track(self, occurrence_key: str | None, stage: NotificationStage = NotificationStage.PENDING):
        self.occurrence_key = occurrence_key
        self.stage = stage
        self.legacy_notified = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "time": self.time,
            "description": self.description,
            "repeat": self.repeat.to_dict() if self.repeat else None,
            "lead_message": self.lead_message,
            "start_message": self.start_message,
            "last_occurrence_key": self.occurrence_key,
            "stage": self.stage.value,
            "pre_notified": self.pre_notified,
            "start_notified": self.start_notified,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def now_millis() -> int:
    return int(_time.time() * 1000)


def parse_time(value) -> str | None:
    """Devuelve "HH:MM" para entradas "H:MM"/"HH:M" validas, o None."""
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_date(value) -> str | None:
    if isinstance(value, date):
        return value.isoformat()[:10]
    if not isinstance(value, str):
        return None
    text = value.strip()
    if _DATE_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%Y/%m/%d").date().isoformat()
    except ValueError:
        return None


def clean_text(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _pick(entry: dict, *keys):
    for key in keys:
        if key in entry and entry[key] is not None:
            return entry[key]
    return None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "si")
    return bool(value)


def normalize_schedule(entry, *, today: date | None = None, fallback_id: int | None = None) -> Schedule | None:
    """Convierte una entrada suelta (dict de JSON, CSV, HTTP o formato antiguo)
    en un Schedule que cumple los invariantes del motor.

    Hora o fecha ilegibles caen a "00:00" y a la fecha de hoy; las rutas
    estrictas (API, importadores) validan antes con ``parse_time``.
    """
    if isinstance(entry, Schedule):
        entry = _schedule_as_entry(entry)
    if not isinstance(entry, dict):
        return None

    today = today or date.today()
    raw_id = entry.get("id")
    try:
        schedule_id = int(raw_id)
    except (TypeError, ValueError):
        schedule_id = fallback_id if fallback_id is not None else now_millis()

    repeat = normalize_repeat(entry.get("repeat"))
    schedule_date = parse_date(entry.get("date")) or today.isoformat()

    pre = _as_bool(_pick(entry, "pre_notified", "preNotified"))
    start = _as_bool(_pick(entry, "start_notified", "startNotified"))
    legacy = _as_bool(entry.get("notified")) and not pre and not start

    occurrence_key = clean_text(_pick(entry, "last_occurrence_key", "lastOccurrenceKey", "occurrence_key"))
    if occurrence_key is None and repeat is None:
        occurrence_key = schedule_date

    try:
        stage = NotificationStage(entry.get("stage"))
    except ValueError:
        stage = NotificationStage.from_flags(pre, start)

    created_at = _pick(entry, "created_at", "createdAt")
    updated_at = _pick(entry, "updated_at", "updatedAt")

    return Schedule(
        id=schedule_id,
        title=clean_text(entry.get("title")) or config.DEFAULT_TITLE,
        date=schedule_date,
        time=parse_time(entry.get("time")) or "00:00",
        description=clean_text(entry.get("description")) or "",
        repeat=repeat,
        lead_message=clean_text(_pick(entry, "lead_message", "leadMessage", "ttsLeadMessage")),
        start_message=clean_text(_pick(entry, "start_message", "startMessage", "ttsMessage")),
        occurrence_key=occurrence_key,
        stage=stage,
        legacy_notified=legacy,
        created_at=int(created_at) if isinstance(created_at, (int, float)) else now_millis(),
        updated_at=int(updated_at) if isinstance(updated_at, (int, float)) else now_millis(),
    )


def _schedule_as_entry(schedule: Schedule) -> dict:
    entry = schedule.to_dict()
    entry["stage"] = schedule.stage.value
    entry["notified"] = schedule.legacy_notified
    return entry
