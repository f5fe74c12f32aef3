import logging
from datetime import datetime, timedelta

import config
from schedules.model import Occurrence, Schedule
from schedules.repeat import python_weekday_to_index

logger = logging.getLogger(__name__)


def _split_time(value: str) -> tuple[int, int] | None:
    try:
        hours, minutes = (int(part) for part in value.split(":"))
    except (AttributeError, ValueError):
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours, minutes


def resolve(schedule: Schedule, reference: datetime | None = None,
            scan_days: int = config.REPEAT_SCAN_DAYS) -> Occurrence | None:
    """Calcula la proxima ocurrencia real de un evento.

    Los eventos sin repeticion devuelven siempre su fecha y hora, aunque ya
    hayan pasado. Los semanales recorren ``scan_days`` dias desde la
    referencia truncada al minuto y devuelven el primer candidato >= la
    referencia: una ocurrencia exactamente en el minuto actual no se salta.
    """
    reference = reference or datetime.now()
    parts = _split_time(schedule.time)
    if parts is None:
        return None
    hours, minutes = parts

    if schedule.repeat is None:
        try:
            moment = datetime.fromisoformat(f"{schedule.date}T{hours:02d}:{minutes:02d}")
        except (TypeError, ValueError):
            return None
        return Occurrence(date_time=moment, key=schedule.date, is_repeating=False)

    days = set(schedule.repeat.days)
    floor = reference.replace(second=0, microsecond=0)
    for offset in range(scan_days):
        day = floor.date() + timedelta(days=offset)
        if python_weekday_to_index(day.weekday()) not in days:
            continue
        candidate = datetime(day.year, day.month, day.day, hours, minutes)
        if candidate >= floor:
            return Occurrence(date_time=candidate, key=day.isoformat(), is_repeating=True)

    logger.warning("Evento %s sin ocurrencia en %d dias (dias=%s)", schedule.id, scan_days, schedule.repeat.days)
    return None
