"""Alta masiva desde texto: una linea por evento, ``H:MM titulo[| repeticion]``.

Ejemplos::

    9:05 Reunion diaria | mon,wed,fri
    13:30 Comida | laborables
    18:00 Gimnasio
"""
import logging
import re
from datetime import date

from schedules.import_result import ImportResult
from schedules.model import parse_time
from schedules.repeat import parse_repeat_spec

logger = logging.getLogger(__name__)

LINE_RE = re.compile(r"^(\d{1,2}):(\d{1,2})\s+(.+)$")


def parse_bulk_line(line: str, today: date | None = None) -> dict | None:
    match = LINE_RE.match(line.strip())
    if not match:
        return None
    time = parse_time(f"{match.group(1)}:{match.group(2)}")
    if time is None:
        return None

    title_part, _, repeat_part = match.group(3).partition("|")
    title = title_part.strip()
    if not title:
        return None

    repeat = parse_repeat_spec(repeat_part)
    return {
        "title": title,
        "date": (today or date.today()).isoformat(),
        "time": time,
        "description": "",
        "repeat": repeat.to_dict() if repeat else None,
    }


def parse_bulk_text(text: str, today: date | None = None) -> ImportResult:
    result = ImportResult()
    for number, line in enumerate((text or "").splitlines(), start=1):
        if not line.strip():
            continue
        entry = parse_bulk_line(line, today)
        if entry is None:
            logger.warning("Linea %d no reconocida: %s", number, line)
            result.errors.append(f"Linea {number}: formato no valido ({line.strip()})")
            continue
        result.schedules.append(entry)
    return result
