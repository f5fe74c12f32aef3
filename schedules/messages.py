"""Textos de aviso: notificaciones de escritorio y frases para leer en voz alta."""
from datetime import date

import config
from schedules.model import Occurrence, Schedule
from schedules.repeat import WEEKDAY_LABELS, format_repeat_label, python_weekday_to_index

PREPARE_SUFFIX = "Preparate, por favor."


def display_title(schedule: Schedule) -> str:
    return (schedule.title or "").strip() or config.DEFAULT_TITLE


def format_date_with_weekday(iso_date: str) -> str:
    try:
        day = date.fromisoformat(iso_date)
    except (TypeError, ValueError):
        return iso_date or ""
    return f"{day.isoformat()} ({WEEKDAY_LABELS[python_weekday_to_index(day.weekday())]})"


def _subject(schedule: Schedule) -> str:
    title = display_title(schedule)
    if schedule.repeat is None:
        return title
    return f"{title} ({format_repeat_label(schedule.repeat)})"


def default_lead_message(schedule: Schedule, lead_minutes: int = config.LEAD_MINUTES) -> str:
    subject = _subject(schedule)
    if schedule.time:
        return f"{subject} empieza a las {schedule.time}. Faltan {lead_minutes} minutos. {PREPARE_SUFFIX}"
    return f"Faltan {lead_minutes} minutos para {subject}. {PREPARE_SUFFIX}"


def default_start_message(schedule: Schedule) -> str:
    subject = _subject(schedule)
    if schedule.time:
        return f"Son las {schedule.time}. Es hora de empezar {subject}."
    return f"Es hora de empezar {subject}."


def lead_message(schedule: Schedule, lead_minutes: int = config.LEAD_MINUTES) -> str:
    return (schedule.lead_message or "").strip() or default_lead_message(schedule, lead_minutes)


def start_message(schedule: Schedule) -> str:
    return (schedule.start_message or "").strip() or default_start_message(schedule)


def lead_notification(schedule: Schedule, occurrence: Occurrence,
                      lead_minutes: int = config.LEAD_MINUTES) -> tuple[str, str]:
    title = f"Evento: {display_title(schedule)}"
    body = f"Empieza en {lead_minutes} minutos\n{format_date_with_weekday(occurrence.key)} {schedule.time}"
    return title, body


def start_notification(schedule: Schedule) -> tuple[str, str]:
    title = f"Evento: {display_title(schedule)}"
    body = f"Es la hora de empezar\n{schedule.description or ''}".rstrip()
    return title, body
