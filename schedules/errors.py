class ScheduleError(Exception):
    """Error base del motor de avisos."""


class ScheduleNotFound(ScheduleError):
    def __init__(self, schedule_id: int):
        super().__init__(f"Evento {schedule_id} no encontrado")
        self.schedule_id = schedule_id


class InvalidScheduleInput(ScheduleError):
    """Entrada con hora, fecha o repeticion que no se puede interpretar."""
