import logging
from datetime import datetime, timedelta

import config
from schedules.model import NotificationStage, Occurrence, Schedule

logger = logging.getLogger(__name__)


class NotificationTracker:
    """Decide el estado de aviso de cada evento para su ocurrencia actual.

    Estados por evento: PENDING -> LEAD_FIRED -> START_FIRED. Solo vuelve a
    PENDING cuando cambia la clave de ocurrencia (nueva semana de un evento
    repetido, o edicion).
    """

    def __init__(self, cooldown: timedelta | None = None):
        self.cooldown = cooldown if cooldown is not None else timedelta(milliseconds=config.COOLDOWN_MS)

    def reconcile(self, schedule: Schedule, occurrence: Occurrence, now: datetime | None = None) -> bool:
        """Alinea el estado guardado con la ocurrencia. Devuelve True si hubo cambios."""
        now = now or datetime.now()
        dirty = False

        if schedule.occurrence_key != occurrence.key:
            schedule.track(occurrence.key, NotificationStage.PENDING)
            dirty = True

        if schedule.legacy_notified:
            # Single-flag format: before the start only the lead could have fired
            if occurrence.date_time > now:
                stage = NotificationStage.LEAD_FIRED
            else:
                stage = NotificationStage.START_FIRED
            schedule.track(occurrence.key, stage)
            logger.info("Evento %s migrado desde formato antiguo: %s", schedule.id, stage.value)
            dirty = True

        if self.is_stale(occurrence, now) and schedule.stage is not NotificationStage.START_FIRED:
            schedule.track(occurrence.key, NotificationStage.START_FIRED)
            logger.info("Evento %s (%s) vencido; se omite el aviso", schedule.id, occurrence.key)
            dirty = True

        return dirty

    def is_stale(self, occurrence: Occurrence, now: datetime) -> bool:
        return occurrence.date_time - now < -self.cooldown

    def mark_lead(self, schedule: Schedule):
        if schedule.stage is NotificationStage.PENDING:
            schedule.track(schedule.occurrence_key, NotificationStage.LEAD_FIRED)

    def mark_start(self, schedule: Schedule):
        schedule.track(schedule.occurrence_key, NotificationStage.START_FIRED)
