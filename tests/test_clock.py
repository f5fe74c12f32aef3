import asyncio
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from schedules import resolver
from schedules.clock import NotificationClock, seconds_to_next_minute, upcoming_label
from schedules.model import NotificationStage
from schedules.store import ScheduleStore
from schedules.tracker import NotificationTracker
from tests.fixtures import RecordingNotifier, RecordingPlayback, make_schedule, make_store


class ClockTestCase(unittest.TestCase):

    def build(self, *schedules):
        self.store, self.bridge = make_store(*schedules)
        self.notifier = RecordingNotifier()
        self.playback = RecordingPlayback()
        self.clock = NotificationClock(
            self.store,
            notifier=self.notifier,
            playback=self.playback,
            tracker=NotificationTracker(cooldown=timedelta(seconds=60)),
            lead_minutes=5,
        )
        return self.clock


class TestLeadAndStart(ClockTestCase):

    def test_lead_fires_once_on_boundary(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))

        result = clock.run_pass(datetime(2026, 10, 15, 9, 55, 0))
        self.assertEqual(result.fired, [(1, NotificationStage.LEAD_FIRED)])
        self.assertEqual(len(self.playback.jobs), 1)
        self.assertIn("Faltan 5 minutos", self.playback.jobs[0][0])
        self.assertEqual(self.playback.jobs[0][1].speed_scale, 1.05)
        self.assertEqual(self.notifier.sent[0][0], "Evento: Standup")

        # Same minute evaluated again: nothing new
        result = clock.run_pass(datetime(2026, 10, 15, 9, 55, 0))
        self.assertEqual(result.fired, [])
        self.assertEqual(len(self.playback.jobs), 1)

    def test_lead_requires_exact_boundary(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))
        result = clock.run_pass(datetime(2026, 10, 15, 9, 55, 3))
        self.assertEqual(result.fired, [])

    def test_start_fires_once_at_start_minute(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00", pre_notified=True))

        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))
        self.assertEqual(result.fired, [(1, NotificationStage.START_FIRED)])
        self.assertIn("Es hora de empezar", self.playback.jobs[0][0])

        for seconds in (0, 20, 40):
            result = clock.run_pass(datetime(2026, 10, 15, 10, 0, seconds))
            self.assertEqual(result.fired, [])
        self.assertEqual(len(self.playback.jobs), 1)

    def test_late_tick_within_grace_window_fires_start(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))
        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 30))
        self.assertEqual(result.fired, [(1, NotificationStage.START_FIRED)])

    def test_full_sequence_is_idempotent(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))
        moment = datetime(2026, 10, 15, 9, 50)
        fired = []
        while moment <= datetime(2026, 10, 15, 10, 10):
            fired.extend(clock.run_pass(moment).fired)
            moment += timedelta(seconds=15)

        self.assertEqual(fired, [(1, NotificationStage.LEAD_FIRED), (1, NotificationStage.START_FIRED)])
        schedule = self.store.get(1)
        self.assertTrue(schedule.pre_notified)
        self.assertTrue(schedule.start_notified)

    def test_explicit_messages_are_used(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00",
                                         lead_message="Cinco minutos", start_message="Ya"))
        clock.run_pass(datetime(2026, 10, 15, 9, 55, 0))
        clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))
        self.assertEqual([job[0] for job in self.playback.jobs], ["Cinco minutos", "Ya"])


class TestBootstrapAndStaleness(ClockTestCase):

    def test_bootstrap_never_fires_lead(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))
        result = clock.run_pass(datetime(2026, 10, 15, 9, 55, 0), bootstrap=True)
        self.assertEqual(result.fired, [])
        self.assertFalse(self.store.get(1).pre_notified)

    def test_bootstrap_allows_start_catch_up(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))
        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 40), bootstrap=True)
        self.assertEqual(result.fired, [(1, NotificationStage.START_FIRED)])

    def test_stale_event_is_silenced(self):
        clock = self.build(make_schedule(date="2026-10-15", time="09:00"))
        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))

        self.assertEqual(result.fired, [])
        self.assertEqual(self.notifier.sent, [])
        self.assertEqual(self.playback.jobs, [])
        self.assertTrue(self.store.get(1).start_notified)
        self.assertTrue(result.dirty)


class TestRepeatingAndPersistence(ClockTestCase):

    def test_weekly_event_fires_again_next_week(self):
        clock = self.build(make_schedule(time="10:00", repeat={"type": "weekly", "days": [4]}))

        first = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))
        self.assertEqual(first.fired, [(1, NotificationStage.START_FIRED)])
        self.assertEqual(self.store.get(1).occurrence_key, "2026-10-15")

        # After the start minute the next occurrence is a week later
        clock.run_pass(datetime(2026, 10, 15, 10, 1, 0))
        self.assertEqual(self.store.get(1).occurrence_key, "2026-10-22")
        self.assertEqual(self.store.get(1).stage, NotificationStage.PENDING)

        second = clock.run_pass(datetime(2026, 10, 22, 10, 0, 0))
        self.assertEqual(second.fired, [(1, NotificationStage.START_FIRED)])

    def test_single_save_per_pass(self):
        clock = self.build(
            make_schedule(id=1, date="2026-10-15", time="10:00"),
            make_schedule(id=2, date="2026-10-15", time="10:00", title="Otro"),
        )
        saves_before = self.bridge.save_calls
        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))
        self.assertEqual(len(result.fired), 2)
        self.assertEqual(self.bridge.save_calls, saves_before + 1)

    def test_clean_pass_does_not_save(self):
        clock = self.build(make_schedule(date="2026-10-20", time="10:00"))
        saves_before = self.bridge.save_calls
        clock.run_pass(datetime(2026, 10, 15, 12, 0, 0))
        self.assertEqual(self.bridge.save_calls, saves_before)

    def test_failing_schedule_does_not_stop_pass(self):
        clock = self.build(
            make_schedule(id=1, date="2026-10-15", time="10:00"),
            make_schedule(id=2, date="2026-10-15", time="10:00", title="Otro"),
        )
        real_resolve = resolver.resolve

        def flaky(schedule, now):
            if schedule.id == 1:
                raise RuntimeError("boom")
            return real_resolve(schedule, now)

        with patch("schedules.clock.resolve", side_effect=flaky):
            result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))

        self.assertEqual(result.failed, [1])
        self.assertEqual(result.fired, [(2, NotificationStage.START_FIRED)])

    def test_notifier_failure_does_not_block_speech(self):
        clock = self.build(make_schedule(date="2026-10-15", time="10:00"))

        class BrokenNotifier:
            def notify(self, title, body):
                raise OSError("no display")

        clock.notifier = BrokenNotifier()
        result = clock.run_pass(datetime(2026, 10, 15, 10, 0, 0))
        self.assertEqual(result.fired, [(1, NotificationStage.START_FIRED)])
        self.assertEqual(len(self.playback.jobs), 1)

    def test_snapshot_sorted_by_next_occurrence(self):
        clock = self.build(
            make_schedule(id=1, date="2026-10-20", time="10:00"),
            make_schedule(id=2, date="2026-10-16", time="10:00"),
        )
        clock.run_pass(datetime(2026, 10, 15, 12, 0, 0))
        self.assertEqual([item.schedule["id"] for item in clock.snapshot], [2, 1])
        self.assertEqual(clock.next_upcoming(datetime(2026, 10, 15, 12, 0)).schedule["id"], 2)


class TestExternalUpdates(unittest.IsolatedAsyncioTestCase):

    def build(self):
        self.store, self.bridge = make_store()
        self.clock = NotificationClock(self.store, notifier=RecordingNotifier(), playback=RecordingPlayback())
        self.voice = ScheduleStore(self.bridge, self.store.events, source="voice-command")
        self.voice.load()
        return self.clock

    def voice_import(self, title="Desde voz"):
        self.voice.bulk_add([{"title": title, "time": "10:00", "date": "2099-01-01"}], reason="import")

    async def test_foreign_import_restarts_running_clock(self):
        clock = self.build()
        clock.start()
        first_task = clock._task

        self.voice_import()

        self.assertEqual([s.title for s in self.store.items()], ["Desde voz"])
        self.assertEqual([item.schedule["title"] for item in clock.snapshot], ["Desde voz"])
        self.assertTrue(clock.running)
        self.assertIsNot(clock._task, first_task)
        clock.close()

    async def test_foreign_update_refreshes_stopped_clock(self):
        clock = self.build()
        self.voice_import()
        self.assertFalse(clock.running)
        self.assertEqual([item.schedule["title"] for item in clock.snapshot], ["Desde voz"])

    async def test_own_import_refreshes_but_own_add_does_not(self):
        clock = self.build()
        self.store.add({"title": "Manual", "time": "9:00", "date": "2099-01-01"})
        self.assertEqual(clock.snapshot, [])

        self.store.bulk_add([{"title": "Lote", "time": "8:00", "date": "2099-01-01"}], reason="bulk")
        self.assertEqual([item.schedule["title"] for item in clock.snapshot], ["Lote", "Manual"])

    async def test_close_stops_listening(self):
        clock = self.build()
        clock.start()
        clock.close()
        self.voice_import()
        self.assertFalse(clock.running)
        self.assertEqual(clock.snapshot, [])


class TestUpcomingLabel(ClockTestCase):

    def test_label_uses_given_snapshot(self):
        clock = self.build(
            make_schedule(id=1, date="2026-10-14", time="10:00", title="Ayer"),
            make_schedule(id=2, date="2026-10-16", time="08:30", title="Manana"),
        )
        snapshot = clock.refresh(datetime(2026, 10, 15, 12, 0))
        self.assertEqual(upcoming_label(snapshot, datetime(2026, 10, 15, 12, 0)), "2026-10-16 08:30 Manana")
        self.assertIsNone(upcoming_label([], datetime(2026, 10, 15, 12, 0)))


class TestTimer(unittest.IsolatedAsyncioTestCase):

    async def test_start_runs_bootstrap_pass_and_stop_cancels(self):
        store, _ = make_store(make_schedule(date="2026-10-20", time="10:00"))
        clock = NotificationClock(store, notifier=RecordingNotifier(), playback=RecordingPlayback())

        clock.start()
        self.assertTrue(clock.running)
        self.assertEqual(len(clock.snapshot), 1)

        clock.stop()
        await asyncio.sleep(0)
        self.assertFalse(clock.running)

    def test_seconds_to_next_minute(self):
        self.assertEqual(seconds_to_next_minute(datetime(2026, 10, 15, 9, 59, 45)), 15)
        self.assertEqual(seconds_to_next_minute(datetime(2026, 10, 15, 9, 59, 0)), 60)


if __name__ == "__main__":
    unittest.main()
