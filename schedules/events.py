import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleUpdate:
    source: str
    reason: str


class ScheduleEvents:
    """Aviso de "la coleccion de eventos cambio" entre componentes del proceso."""

    def __init__(self):
        self._listeners: list[Callable[[ScheduleUpdate], None]] = []

    def subscribe(self, listener: Callable[[ScheduleUpdate], None]):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[ScheduleUpdate], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, source: str, reason: str):
        update = ScheduleUpdate(source=source, reason=reason)
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as e:
                logger.error("Error en suscriptor de eventos (%s): %s", reason, e)
