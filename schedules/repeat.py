"""Vocabulario de dias de la semana y normalizacion de repeticiones semanales.

Los dias se numeran 0-6 empezando en domingo (0=domingo, 1=lunes, ...).
"""
import re
from dataclasses import dataclass

WEEKDAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
WEEKDAY_LABELS = ("dom", "lun", "mar", "mie", "jue", "vie", "sab")

WEEKDAYS = (1, 2, 3, 4, 5)
EVERY_DAY = (0, 1, 2, 3, 4, 5, 6)

REPEAT_TYPE_ALIASES = {
    "weekly": "weekly",
    "week": "weekly",
    "semanal": "weekly",
    "weekdays": "weekdays",
    "weekday": "weekdays",
    "laborables": "weekdays",
    "entre semana": "weekdays",
    "daily": "daily",
    "everyday": "daily",
    "diario": "daily",
    "todos los dias": "daily",
    "todos los días": "daily",
}

PRESET_REPEAT_DAYS = {
    "weekdays": WEEKDAYS,
    "daily": EVERY_DAY,
}

_DAY_NAMES = (
    ("sun", "sunday", "dom", "domingo"),
    ("mon", "monday", "lun", "lunes"),
    ("tue", "tuesday", "tues", "mar", "martes"),
    ("wed", "wednesday", "mie", "mié", "miercoles", "miércoles"),
    ("thu", "thursday", "thur", "thurs", "jue", "jueves"),
    ("fri", "friday", "vie", "viernes"),
    ("sat", "saturday", "sab", "sáb", "sabado", "sábado"),
)

REPEAT_TOKEN_MAP = {str(day): day for day in EVERY_DAY}
for _day, _names in enumerate(_DAY_NAMES):
    for _name in _names:
        REPEAT_TOKEN_MAP[_name] = _day

_TOKEN_SPLIT = re.compile(r"[,\s/;]+")


@dataclass(frozen=True)
class Repeat:
    days: tuple
    type: str = "weekly"

    def to_dict(self) -> dict:
        return {"type": self.type, "days": list(self.days)}


def python_weekday_to_index(weekday: int) -> int:
    """Convierte date.weekday() (0=lunes) al indice 0=domingo."""
    return (weekday + 1) % 7


def normalize_repeat(raw) -> Repeat | None:
    """Normaliza una repeticion cruda a Repeat o None.

    Acepta dicts ``{"type": ..., "days": [...]}`` o instancias de Repeat.
    Los alias de tipo sin dias (``daily``, ``weekdays``) se expanden a sus
    dias predefinidos. Dias fuera de 0-6 se descartan; un conjunto vacio
    equivale a "sin repeticion".
    """
    if raw is None:
        return None
    if isinstance(raw, Repeat):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        return None

    raw_type = raw.get("type")
    type_key = raw_type.strip().lower() if isinstance(raw_type, str) else ""
    mapped = REPEAT_TYPE_ALIASES.get(type_key, "weekly")

    candidates = raw.get("days")
    if not isinstance(candidates, (list, tuple, set, frozenset)):
        candidates = []
    if not candidates and mapped in PRESET_REPEAT_DAYS:
        candidates = PRESET_REPEAT_DAYS[mapped]

    days = set()
    for value in candidates:
        if isinstance(value, bool):
            continue
        try:
            day = int(value)
        except (TypeError, ValueError):
            continue
        if 0 <= day <= 6 and str(value).strip() == str(day):
            days.add(day)

    if not days:
        return None
    return Repeat(days=tuple(sorted(days)))


def parse_day_tokens(text: str) -> list[int]:
    """Traduce tokens libres ("mon,wed", "lunes viernes", "1 3") a dias."""
    days = set()
    for token in _TOKEN_SPLIT.split(text or ""):
        token = token.strip().lower()
        if token in REPEAT_TOKEN_MAP:
            days.add(REPEAT_TOKEN_MAP[token])
    return sorted(days)


def parse_repeat_spec(spec: str) -> Repeat | None:
    """Interpreta la parte de repeticion de una linea de alta masiva."""
    spec = (spec or "").strip()
    if not spec:
        return None

    preset = REPEAT_TYPE_ALIASES.get(spec.lower())
    if preset in PRESET_REPEAT_DAYS:
        return Repeat(days=PRESET_REPEAT_DAYS[preset])

    days = parse_day_tokens(spec)
    if not days:
        return None
    return Repeat(days=tuple(days))


def parse_repeat_columns(repeat_type: str, repeat_days: str) -> Repeat | None:
    """Reconstruye la repeticion desde las columnas repeat_type/repeat_days del CSV."""
    type_key = (repeat_type or "").strip().lower()
    if not type_key:
        return None
    if type_key not in REPEAT_TYPE_ALIASES:
        return None
    return normalize_repeat({"type": type_key, "days": parse_day_tokens(repeat_days)})


def format_repeat_days(repeat: Repeat | None) -> str:
    """Dias como tokens de tres letras separados por coma ("mon,wed,fri")."""
    if repeat is None:
        return ""
    return ",".join(WEEKDAY_KEYS[day] for day in sorted(repeat.days))


def format_repeat_label(repeat: Repeat | None) -> str:
    if repeat is None:
        return ""
    if tuple(repeat.days) == EVERY_DAY:
        return "todos los dias"
    return "cada " + "/".join(WEEKDAY_LABELS[day] for day in sorted(repeat.days))
