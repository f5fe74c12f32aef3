SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schedules (
    id                  INTEGER PRIMARY KEY,
    title               TEXT NOT NULL,
    description         TEXT,
    date                TEXT NOT NULL,
    time                TEXT NOT NULL,
    repeat_config       TEXT,
    notified            INTEGER NOT NULL DEFAULT 0,
    pre_notified        INTEGER NOT NULL DEFAULT 0,
    start_notified      INTEGER NOT NULL DEFAULT 0,
    tts_message         TEXT,
    tts_lead_message    TEXT,
    last_occurrence_key TEXT,
    created_at          INTEGER NOT NULL,
    updated_at          INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_schedules_date ON schedules(date, time);
CREATE INDEX IF NOT EXISTS idx_schedules_last_occurrence ON schedules(last_occurrence_key);
"""

SCHEDULE_COLUMNS = (
    "id",
    "title",
    "description",
    "date",
    "time",
    "repeat_config",
    "notified",
    "pre_notified",
    "start_notified",
    "tts_message",
    "tts_lead_message",
    "last_occurrence_key",
    "created_at",
    "updated_at",
)
