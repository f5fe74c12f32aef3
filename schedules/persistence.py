import json
import logging
import os
import sqlite3
from pathlib import Path

from db.database import Database
from schedules.model import Schedule, normalize_schedule, now_millis
from schedules.repeat import normalize_repeat

logger = logging.getLogger(__name__)


def schedule_to_row(schedule: Schedule) -> dict:
    return {
        "id": schedule.id,
        "title": schedule.title,
        "description": schedule.description or None,
        "date": schedule.date,
        "time": schedule.time,
        "repeat_config": json.dumps(schedule.repeat.to_dict()) if schedule.repeat else None,
        "notified": int(schedule.pre_notified or schedule.start_notified or schedule.legacy_notified),
        "pre_notified": int(schedule.pre_notified),
        "start_notified": int(schedule.start_notified),
        "tts_message": schedule.start_message,
        "tts_lead_message": schedule.lead_message,
        "last_occurrence_key": schedule.occurrence_key,
        "created_at": schedule.created_at,
        "updated_at": schedule.updated_at,
    }


def row_to_schedule(row: dict) -> Schedule | None:
    repeat = None
    if row.get("repeat_config"):
        try:
            repeat = normalize_repeat(json.loads(row["repeat_config"]))
        except (TypeError, ValueError) as e:
            logger.warning("repeat_config ilegible en evento %s: %s", row.get("id"), e)
    return normalize_schedule({
        "id": row.get("id"),
        "title": row.get("title"),
        "description": row.get("description"),
        "date": row.get("date"),
        "time": row.get("time"),
        "repeat": repeat,
        "notified": bool(row.get("notified")),
        "pre_notified": bool(row.get("pre_notified")),
        "start_notified": bool(row.get("start_notified")),
        "start_message": row.get("tts_message"),
        "lead_message": row.get("tts_lead_message"),
        "last_occurrence_key": row.get("last_occurrence_key"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    })


class ScheduleBridge:
    """Carga y guardado en bloque de la coleccion de eventos."""

    def __init__(self, db: Database):
        self.db = db

    def load(self) -> list[Schedule]:
        try:
            rows = self.db.list_schedules()
        except (sqlite3.Error, OSError) as e:
            logger.error("No se pudieron leer los eventos: %s", e)
            return []
        schedules = []
        for row in rows:
            schedule = row_to_schedule(row)
            if schedule is not None:
                schedules.append(schedule)
        return schedules

    def save_all(self, schedules: list[Schedule]) -> bool:
        try:
            self.db.replace_all_schedules([schedule_to_row(s) for s in schedules])
            return True
        except (sqlite3.Error, OSError) as e:
            logger.error("No se pudieron guardar los eventos: %s", e)
            return False


def migrate_legacy_cache(cache_path: Path, db: Database) -> int:
    """Importa una sola vez la cache JSON antigua de eventos a la base de datos.

    El fichero puede ser una lista o un objeto con la clave ``scheduleCache``.
    Tras migrar, la cache queda vacia y marcada con ``scheduleCacheMigratedAt``.
    """
    cache_path = Path(cache_path)
    if not cache_path.exists():
        return 0

    try:
        data = json.loads(cache_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("No se pudo leer la cache antigua %s: %s", cache_path, e)
        return 0

    entries = data.get("scheduleCache") if isinstance(data, dict) else data
    if not isinstance(entries, list) or not entries:
        return 0

    base_id = now_millis()
    schedules = [
        normalize_schedule(entry, fallback_id=base_id + index)
        for index, entry in enumerate(entries)
    ]
    rows = [schedule_to_row(s) for s in schedules if s is not None]
    try:
        db.upsert_schedules(rows)
    except sqlite3.Error as e:
        logger.error("Fallo la migracion de la cache antigua: %s", e)
        return 0

    next_data = dict(data) if isinstance(data, dict) else {}
    next_data["scheduleCache"] = []
    next_data["scheduleCacheMigratedAt"] = base_id
    tmp_path = cache_path.with_suffix(".tmp")
    try:
        tmp_path.write_text(json.dumps(next_data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(str(tmp_path), str(cache_path))
    except OSError as e:
        logger.warning("No se pudo actualizar la cache antigua tras migrar: %s", e)

    logger.info("Migrados %d eventos desde %s", len(rows), cache_path)
    return len(rows)
