import logging
import socket
import sys
import threading

import uvicorn

import config
from db.database import Database
from schedules.clock import NotificationClock, upcoming_label
from schedules.events import ScheduleEvents
from schedules.persistence import ScheduleBridge, migrate_legacy_cache
from schedules.store import ScheduleStore
from server.app import create_app
from speech.player import play_audio
from speech.queue import PlaybackQueue
from speech.voicevox import VoicevoxClient
from tray.tray_icon import TrayIcon

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("deskchime")


def find_available_port(start: int, end: int) -> int:
    for port in range(start, end + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((config.HOST, port))
                return port
            except OSError:
                continue
    raise RuntimeError(f"No se encontro un puerto disponible entre {start} y {end}")


def main():
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Find available port
    try:
        port = find_available_port(config.PORT, config.PORT + 10)
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    if port != config.PORT:
        logger.info("Puerto %d en uso, usando %d", config.PORT, port)
    config.PORT = port

    # Database and one-time legacy cache import
    db = Database(config.DB_PATH)
    migrate_legacy_cache(config.LEGACY_CACHE_PATH, db)

    events = ScheduleEvents()
    store = ScheduleStore(ScheduleBridge(db), events)
    store.load()

    voicevox = VoicevoxClient()
    if not voicevox.is_available():
        logger.warning("VOICEVOX no responde en %s; los avisos seran solo visuales", voicevox.base_url)
    playback = PlaybackQueue(synthesize=voicevox.render, play=play_audio)

    server_should_stop = threading.Event()

    def quit_app():
        logger.info("Cerrando DeskChime...")
        server_should_stop.set()

    tray = TrayIcon(on_quit=quit_app)

    def show_next(snapshot):
        tray.update_next(upcoming_label(snapshot))

    clock = NotificationClock(store, notifier=tray, playback=playback, on_snapshot=show_next)

    # Clock is started by the app lifespan on the uvicorn loop
    app = create_app(store, clock, playback, voicevox)

    # Start server in background thread
    server_config = uvicorn.Config(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="warning",
    )
    server = uvicorn.Server(server_config)

    def run_server():
        server.run()

    server_thread = threading.Thread(target=run_server, daemon=True)
    server_thread.start()

    def watch_stop():
        server_should_stop.wait()
        server.should_exit = True

    threading.Thread(target=watch_stop, daemon=True).start()

    logger.info("DeskChime iniciado en http://%s:%d (%d eventos)", config.HOST, config.PORT, len(store))

    # Tray owns the main thread until quit
    try:
        tray.run()
    except KeyboardInterrupt:
        pass
    finally:
        quit_app()
        server.should_exit = True
        server_thread.join(timeout=5)


if __name__ == "__main__":
    main()
