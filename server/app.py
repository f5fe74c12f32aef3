from contextlib import asynccontextmanager

from fastapi import FastAPI

from server.routes import create_router


def create_app(store, clock, playback, voicevox) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Clock shares the event loop with request handling
        clock.start()
        try:
            yield
        finally:
            clock.close()

    app = FastAPI(title="DeskChime", version="0.1.0", lifespan=lifespan)

    router = create_router(store, clock, playback, voicevox)
    app.include_router(router, prefix="/api")

    return app
