"""Importacion y exportacion de eventos en CSV (UTF-8, con cabecera)."""
import csv
import io
from datetime import date

from schedules.import_result import ImportResult
from schedules.model import Schedule, parse_date, parse_time
from schedules.repeat import format_repeat_days, parse_repeat_columns

CSV_HEADERS = ["title", "date", "time", "description", "repeat_type", "repeat_days"]


def export_csv(schedules: list[Schedule]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for schedule in schedules:
        writer.writerow([
            schedule.title or "",
            schedule.date or "",
            schedule.time or "",
            schedule.description or "",
            schedule.repeat.type if schedule.repeat else "",
            format_repeat_days(schedule.repeat),
        ])
    return buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    return f"schedules_{(today or date.today()).isoformat()}.csv"


def parse_csv(text: str, today: date | None = None) -> ImportResult:
    """Convierte un CSV en entradas de evento.

    Las columnas se buscan por nombre de cabecera sin distinguir mayusculas.
    ``title`` y ``time`` son obligatorias; las filas sin ellas, o con hora o
    fecha ilegibles, se omiten y se anotan en ``errors``.
    """
    result = ImportResult()
    today = today or date.today()
    reader = csv.reader(io.StringIO((text or "").lstrip("\ufeff")))
    rows = [row for row in reader if any(value.strip() for value in row)]
    if not rows:
        result.errors.append("El CSV esta vacio")
        return result

    header = [cell.strip().lower() for cell in rows[0]]
    index = {name: header.index(name) for name in CSV_HEADERS if name in header}
    if "title" not in index or "time" not in index:
        result.errors.append("Las columnas title y time son obligatorias")
        return result

    def cell(row, name):
        position = index.get(name)
        if position is None or position >= len(row):
            return ""
        return row[position].strip()

    for number, row in enumerate(rows[1:], start=2):
        title = cell(row, "title")
        raw_time = cell(row, "time")
        if not title or not raw_time:
            result.errors.append(f"Fila {number}: title o time vacio")
            continue

        time = parse_time(raw_time)
        if time is None:
            result.errors.append(f"Fila {number}: hora no valida ({raw_time})")
            continue

        raw_date = cell(row, "date")
        schedule_date = parse_date(raw_date) if raw_date else today.isoformat()
        if schedule_date is None:
            result.errors.append(f"Fila {number}: fecha no valida ({raw_date})")
            continue

        repeat = parse_repeat_columns(cell(row, "repeat_type"), cell(row, "repeat_days"))
        result.schedules.append({
            "title": title,
            "date": schedule_date,
            "time": time,
            "description": cell(row, "description"),
            "repeat": repeat.to_dict() if repeat else None,
        })
    return result
