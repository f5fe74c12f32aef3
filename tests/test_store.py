import tempfile
import unittest
from pathlib import Path

from db.database import Database
from schedules.errors import InvalidScheduleInput, ScheduleNotFound
from schedules.events import ScheduleEvents
from schedules.model import NotificationStage
from schedules.persistence import ScheduleBridge
from schedules.store import ScheduleStore
from tests.fixtures import make_schedule, make_store


class TestStoreMutations(unittest.TestCase):

    def test_add_assigns_unique_ids_and_saves(self):
        store, bridge = make_store()
        added = store.bulk_add([
            {"title": "A", "time": "9:00", "date": "2026-10-20"},
            {"title": "B", "time": "10:00", "date": "2026-10-20"},
        ])
        self.assertEqual(len({s.id for s in added}), 2)
        self.assertEqual(len(bridge.stored), 2)
        self.assertEqual(added[0].time, "09:00")

    def test_new_entries_ignore_incoming_state(self):
        store, _ = make_store()
        schedule = store.add({"title": "A", "time": "9:00", "date": "2026-10-20",
                              "pre_notified": True, "stage": "start_fired", "id": 99})
        self.assertNotEqual(schedule.id, 99)
        self.assertEqual(schedule.stage, NotificationStage.PENDING)
        self.assertEqual(schedule.occurrence_key, "2026-10-20")

    def test_add_rejects_bad_time(self):
        store, bridge = make_store()
        with self.assertRaises(InvalidScheduleInput):
            store.add({"title": "A", "time": "25:00"})
        self.assertEqual(len(store), 0)
        self.assertEqual(bridge.save_calls, 0)

    def test_repeating_entry_gets_occurrence_key_on_add(self):
        store, _ = make_store()
        schedule = store.add({"title": "Standup", "time": "10:00", "repeat": {"days": [1, 3, 5]}})
        self.assertIsNotNone(schedule.occurrence_key)

    def test_update_resets_notification_state(self):
        store, _ = make_store(make_schedule(date="2026-10-15", time="10:00", start_notified=True))
        updated = store.update(1, {"date": "2026-10-22", "time": "11:00"})

        self.assertEqual(updated.stage, NotificationStage.PENDING)
        self.assertEqual(updated.occurrence_key, "2026-10-22")
        self.assertEqual(updated.title, "Standup")
        self.assertIs(store.get(1), updated)

    def test_update_unknown_id(self):
        store, _ = make_store()
        with self.assertRaises(ScheduleNotFound):
            store.update(404, {"title": "x"})

    def test_delete(self):
        store, bridge = make_store(make_schedule(id=1), make_schedule(id=2, title="Otro"))
        store.delete(1)
        self.assertEqual([s.id for s in store.items()], [2])
        self.assertEqual([s.id for s in bridge.stored], [2])
        with self.assertRaises(ScheduleNotFound):
            store.delete(1)


class TestStoreEvents(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db = Database(Path(self.tmp.name) / "deskchime.db")
        self.events = ScheduleEvents()

    def tearDown(self):
        self.tmp.cleanup()

    def test_foreign_update_triggers_reload(self):
        engine = ScheduleStore(ScheduleBridge(self.db), self.events, source="schedule-store")
        panel = ScheduleStore(ScheduleBridge(self.db), self.events, source="panel")
        engine.load()
        panel.load()

        panel.add({"title": "Desde el panel", "time": "12:00", "date": "2026-10-20"})

        self.assertEqual([s.title for s in engine.items()], ["Desde el panel"])

    def test_own_update_is_ignored(self):
        store = ScheduleStore(ScheduleBridge(self.db), self.events)
        store.load()
        reloads = []
        store.reload = lambda: reloads.append(True)

        store.add({"title": "A", "time": "9:00", "date": "2026-10-20"})
        self.assertEqual(reloads, [])

    def test_state_survives_restart(self):
        store = ScheduleStore(ScheduleBridge(self.db), self.events)
        store.load()
        schedule = store.add({"title": "A", "time": "9:00", "date": "2026-10-20"})
        schedule.track(schedule.occurrence_key, NotificationStage.LEAD_FIRED)
        store.save("notifications")

        reopened = ScheduleStore(ScheduleBridge(self.db), ScheduleEvents())
        reopened.load()
        restored = reopened.get(schedule.id)
        self.assertTrue(restored.pre_notified)
        self.assertFalse(restored.start_notified)
        self.assertEqual(restored.occurrence_key, "2026-10-20")


if __name__ == "__main__":
    unittest.main()
