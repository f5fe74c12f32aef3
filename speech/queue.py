import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybackJob:
    text: str
    voice: Any = None


async def _call(func: Callable, *args):
    # Blocking callables (requests, pydub) run off the event loop
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)


class PlaybackQueue:
    """Cola FIFO de sintesis + reproduccion con un unico consumidor.

    Nunca hay dos sintesis ni dos reproducciones en curso a la vez: el
    consumidor toma un trabajo, lo sintetiza, lo reproduce hasta el final y
    solo entonces pasa al siguiente. Un trabajo que falla se registra y se
    descarta sin detener la cola.
    """

    def __init__(self, synthesize: Callable, play: Callable):
        self._synthesize = synthesize
        self._play = play
        self._jobs: deque[PlaybackJob] = deque()
        self._drain_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def busy(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, text: str, voice=None):
        self._jobs.append(PlaybackJob(text=text, voice=voice))
        if not self.busy:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain(), name="playback-queue")

    async def idle(self):
        """Espera a que la cola quede vacia."""
        while self.busy:
            await asyncio.shield(self._drain_task)

    async def _drain(self):
        while self._jobs:
            job = self._jobs.popleft()
            try:
                audio = await _call(self._synthesize, job.text, job.voice)
            except Exception as e:
                logger.warning("Sintesis fallida, se descarta '%s': %s", job.text[:40], e)
                continue
            try:
                await _call(self._play, audio)
            except Exception as e:
                logger.warning("Error reproduciendo '%s': %s", job.text[:40], e)
