import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("DESKCHIME_DATA_DIR", str(BASE_DIR / "data")))
DB_PATH = DATA_DIR / "deskchime.db"
LEGACY_CACHE_PATH = DATA_DIR / "config.json"

# Server
HOST = "127.0.0.1"
PORT = int(os.getenv("DESKCHIME_PORT", "8790"))

# Notifications
LEAD_MINUTES = int(os.getenv("DESKCHIME_LEAD_MINUTES", "5"))
# Grace window for late ticks; older events are treated as missed
COOLDOWN_MS = int(os.getenv("DESKCHIME_COOLDOWN_MS", "60000"))
REPEAT_SCAN_DAYS = 14
DEFAULT_TITLE = os.getenv("DESKCHIME_DEFAULT_TITLE", "Evento")

# VOICEVOX
VOICEVOX_HOST = os.getenv("DESKCHIME_VOICEVOX_HOST", "127.0.0.1")
VOICEVOX_PORT = int(os.getenv("DESKCHIME_VOICEVOX_PORT", "50021"))
VOICEVOX_TIMEOUT = float(os.getenv("DESKCHIME_VOICEVOX_TIMEOUT", "30"))
NOTIFICATION_SPEAKER_ID = int(os.getenv("DESKCHIME_SPEAKER_ID", "1"))
LEAD_SPEED_SCALE = 1.05
START_SPEED_SCALE = 1.0
