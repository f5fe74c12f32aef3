"""Shared fakes for the notification engine tests."""

from __future__ import annotations

from datetime import date

from schedules.events import ScheduleEvents
from schedules.model import normalize_schedule
from schedules.store import ScheduleStore

THURSDAY = date(2026, 10, 15)


class FakeBridge:
    """In-memory stand-in for the persistence bridge."""

    def __init__(self, schedules=None):
        self.stored = list(schedules or [])
        self.save_calls = 0

    def load(self):
        return [normalize_schedule(s) for s in self.stored]

    def save_all(self, schedules):
        self.save_calls += 1
        self.stored = [normalize_schedule(s) for s in schedules]
        return True


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, title, body):
        self.sent.append((title, body))


class RecordingPlayback:
    def __init__(self):
        self.jobs = []

    def enqueue(self, text, voice=None):
        self.jobs.append((text, voice))

    def __len__(self):
        return len(self.jobs)


def make_schedule(**overrides):
    entry = {
        "id": 1,
        "title": "Standup",
        "date": "2026-10-15",
        "time": "10:00",
    }
    entry.update(overrides)
    return normalize_schedule(entry)


def make_store(*schedules, events=None, source="schedule-store"):
    bridge = FakeBridge(schedules)
    store = ScheduleStore(bridge, events or ScheduleEvents(), source=source)
    store.load()
    return store, bridge
