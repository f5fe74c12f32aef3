import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from schedules.bulk import parse_bulk_text
from schedules.clock import NotificationClock, VoiceOptions
from schedules.csv_io import export_csv, export_filename, parse_csv
from schedules.errors import InvalidScheduleInput, ScheduleNotFound
from schedules.import_result import ImportResult
from schedules.store import ScheduleStore
from speech.queue import PlaybackQueue
from speech.voicevox import SpeechSynthesisError, VoicevoxClient

logger = logging.getLogger(__name__)


class RepeatBody(BaseModel):
    type: str = "weekly"
    days: list[int] = []


class ScheduleBody(BaseModel):
    title: str
    time: str
    date: str | None = None
    description: str | None = None
    repeat: RepeatBody | None = None
    lead_message: str | None = None
    start_message: str | None = None


class ScheduleUpdateBody(BaseModel):
    title: str | None = None
    time: str | None = None
    date: str | None = None
    description: str | None = None
    repeat: RepeatBody | None = None
    lead_message: str | None = None
    start_message: str | None = None


class TextBody(BaseModel):
    content: str


class SpeechTestBody(BaseModel):
    text: str
    speaker_id: int | None = None
    speed_scale: float = 1.0


def create_router(store: ScheduleStore, clock: NotificationClock,
                  playback: PlaybackQueue, voicevox: VoicevoxClient) -> APIRouter:
    router = APIRouter()

    # Handlers are async so they run on the clock loop and never
    # interleave with a notification pass.

    def _import(result: ImportResult, reason: str) -> dict:
        # The clock re-arms itself on the "import"/"bulk" update
        added = store.bulk_add(result.schedules, reason=reason) if result.schedules else []
        return {
            "imported": len(added),
            "skipped": result.error_count,
            "errors": result.errors,
            "schedules": [s.to_dict() for s in added],
        }

    # -- Status --

    @router.get("/status")
    async def get_status():
        if not clock.running:
            clock.refresh()
        upcoming = clock.next_upcoming()
        available = await asyncio.to_thread(voicevox.is_available)
        return {
            "schedules": len(store),
            "clock_running": clock.running,
            "next": upcoming.to_dict() if upcoming else None,
            "voicevox_available": available,
            "playback_pending": len(playback),
        }

    # -- Schedules CRUD --

    @router.get("/schedules")
    async def list_schedules():
        clock.refresh()
        return [item.to_dict() for item in clock.snapshot]

    @router.get("/schedules/export")
    async def export_schedules():
        content = export_csv(store.items())
        filename = export_filename()
        return Response(
            content=content,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.get("/schedules/{schedule_id}")
    async def get_schedule(schedule_id: int):
        try:
            return store.get(schedule_id).to_dict()
        except ScheduleNotFound:
            raise HTTPException(404, "Evento no encontrado")

    @router.post("/schedules")
    async def create_schedule(body: ScheduleBody):
        try:
            schedule = store.add(body.model_dump(exclude_none=True))
        except InvalidScheduleInput as e:
            raise HTTPException(400, str(e))
        clock.refresh()
        return schedule.to_dict()

    @router.put("/schedules/{schedule_id}")
    async def update_schedule(schedule_id: int, body: ScheduleUpdateBody):
        values = body.model_dump(exclude_unset=True)
        try:
            schedule = store.update(schedule_id, values)
        except ScheduleNotFound:
            raise HTTPException(404, "Evento no encontrado")
        except InvalidScheduleInput as e:
            raise HTTPException(400, str(e))
        clock.refresh()
        return schedule.to_dict()

    @router.delete("/schedules/{schedule_id}")
    async def delete_schedule(schedule_id: int):
        try:
            store.delete(schedule_id)
        except ScheduleNotFound:
            raise HTTPException(404, "Evento no encontrado")
        clock.refresh()
        return {"deleted": True}

    # -- Import --

    @router.post("/schedules/bulk")
    async def bulk_add(body: TextBody):
        result = parse_bulk_text(body.content)
        if not result.schedules:
            raise HTTPException(400, {
                "message": "No hay lineas validas. Ejemplo: 10:00 Reunion | mon,wed",
                "errors": result.errors,
            })
        logger.info("Alta masiva: %s", result.summary())
        return _import(result, "bulk")

    @router.post("/schedules/import")
    async def import_csv(body: TextBody):
        result = parse_csv(body.content)
        if not result.schedules:
            raise HTTPException(400, {
                "message": "No se encontraron eventos validos en el CSV",
                "errors": result.errors,
            })
        logger.info("Importacion CSV: %s", result.summary())
        return _import(result, "import")

    # -- Speech --

    @router.post("/speech/test")
    async def speech_test(body: SpeechTestBody):
        if not body.text.strip():
            raise HTTPException(400, "Texto vacio")
        voice = VoiceOptions(speed_scale=body.speed_scale)
        if body.speaker_id is not None:
            voice = VoiceOptions(speaker_id=body.speaker_id, speed_scale=body.speed_scale)
        playback.enqueue(body.text.strip(), voice)
        return {"queued": True, "pending": len(playback), "requested_at": datetime.now().isoformat()}

    @router.get("/speech/speakers")
    async def list_speakers():
        try:
            return await asyncio.to_thread(voicevox.list_speakers)
        except SpeechSynthesisError as e:
            raise HTTPException(503, str(e))

    return router
