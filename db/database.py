import sqlite3
import threading
from pathlib import Path

from db.models import SCHEDULE_COLUMNS, SCHEMA_SQL

_local = threading.local()

_UPSERT_SQL = (
    f"INSERT INTO schedules ({', '.join(SCHEDULE_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in SCHEDULE_COLUMNS)}) "
    "ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f"{col} = excluded.{col}" for col in SCHEDULE_COLUMNS if col not in ("id", "created_at"))
)


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conns = getattr(_local, "conns", None)
        if conns is None:
            conns = _local.conns = {}
        key = str(self.db_path)
        if key not in conns:
            conn = sqlite3.connect(key)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conns[key] = conn
        return conns[key]

    def _init_schema(self):
        conn = self._get_conn()
        conn.executescript(SCHEMA_SQL)
        conn.commit()

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        cursor = self._get_conn().execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def list_schedules(self) -> list[dict]:
        return self.fetchall("SELECT * FROM schedules ORDER BY date ASC, time ASC, id ASC")

    def upsert_schedules(self, rows: list[dict]):
        if not rows:
            return
        conn = self._get_conn()
        with conn:
            conn.executemany(_UPSERT_SQL, [_row_values(row) for row in rows])

    def replace_all_schedules(self, rows: list[dict]):
        """Escribe el conjunto completo: upsert de cada fila y borrado del resto."""
        conn = self._get_conn()
        with conn:
            if rows:
                conn.executemany(_UPSERT_SQL, [_row_values(row) for row in rows])
                ids = [row["id"] for row in rows]
                placeholders = ", ".join("?" for _ in ids)
                conn.execute(f"DELETE FROM schedules WHERE id NOT IN ({placeholders})", tuple(ids))
            else:
                conn.execute("DELETE FROM schedules")


def _row_values(row: dict) -> tuple:
    return tuple(row.get(col) for col in SCHEDULE_COLUMNS)
