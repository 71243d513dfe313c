"""Tests for daylock.services.reminders: timing, planning, firing, the loop."""

import asyncio
import json
import pytest
import fakeredis
import redis
from datetime import datetime, timedelta

from daylock.config.settings import REMINDER_CHANNEL
from daylock.models.messages import Reminder
from daylock.services.context import AccountabilityContext
from daylock.services.record_store import set_room_reminders
from daylock.services.reminders import (
    FIRED_PREFIX,
    PendingReminder,
    RedisNotificationSink,
    ReminderScheduler,
    build_notification,
    format_reminder,
    next_reminder_time,
)


class RecordingSink:
    def __init__(self):
        self.delivered = []

    def deliver(self, notification):
        self.delivered.append(notification)


class BrokenSink:
    def deliver(self, notification):
        raise ConnectionError("push service down")


class FlakyRedis(fakeredis.FakeRedis):
    """Fails the first ``failures`` calls to the named command, then recovers."""

    def __init__(self, command, failures=1, **kwargs):
        super().__init__(**kwargs)
        self._command = command
        self._failures = failures

    def _maybe_fail(self, command):
        if command == self._command and self._failures > 0:
            self._failures -= 1
            raise redis.ConnectionError("connection reset by peer")

    def exists(self, *names):
        self._maybe_fail("exists")
        return super().exists(*names)

    def set(self, *args, **kwargs):
        self._maybe_fail("set")
        return super().set(*args, **kwargs)


def reminder(rid="gym-15", time_start="13:00", minutes_before=15):
    return Reminder(
        reminder_id=rid, room_id="gym", room_name="Gym", room_emoji="🏋️",
        time_start=time_start, minutes_before=minutes_before,
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def scheduler(ctx, sink):
    """Scheduler over a fixed in-memory reminder list."""
    reminders = [reminder(), reminder("study-30", "20:00", 30)]
    return ReminderScheduler(ctx, source=lambda: reminders, sink=sink)


# ═══════════════════════════════════════════════════════════════════════════
# Timing
# ═══════════════════════════════════════════════════════════════════════════


class TestNextReminderTime:
    def test_later_today(self, frozen_now):
        timing = next_reminder_time("13:00", 15, frozen_now)
        assert timing.target == datetime(2026, 2, 15, 12, 45)
        assert timing.seconds == 45 * 60

    def test_passed_rolls_to_tomorrow(self, frozen_now):
        timing = next_reminder_time("12:10", 15, frozen_now)
        assert timing.target == datetime(2026, 2, 16, 11, 55)
        assert timing.seconds == 86100

    def test_exactly_now_rolls_to_tomorrow(self, frozen_now):
        timing = next_reminder_time("12:15", 15, frozen_now)
        assert timing.target == frozen_now + timedelta(days=1)

    def test_lead_crossing_midnight(self, frozen_now):
        timing = next_reminder_time("00:10", 30, frozen_now)
        assert timing.target == datetime(2026, 2, 15, 23, 40)

    @pytest.mark.parametrize("value", ["", "soon", "25:00"])
    def test_malformed_start(self, frozen_now, value):
        assert next_reminder_time(value, 15, frozen_now) is None


class TestFormatting:
    @pytest.mark.parametrize("minutes,text", [
        (1, "1 min before"),
        (45, "45 min before"),
        (60, "1 hour before"),
        (120, "2 hours before"),
        (90, "1h 30m before"),
    ])
    def test_format_reminder(self, minutes, text):
        assert format_reminder(minutes) == text

    def test_notification_content(self):
        pending = PendingReminder(reminder(), datetime(2026, 2, 15, 12, 45), 2700, "gym-15-2026-02-15T12:45")
        notification = build_notification(pending)
        assert notification.title == "🏋️ Gym opens soon!"
        assert notification.body == "Your room opens 15 min from now. Get ready!"
        assert notification.tag == "room-reminder-gym-15"
        assert notification.fire_at == "2026-02-15T12:45:00"
        assert notification.fire_key == pending.fire_key


# ═══════════════════════════════════════════════════════════════════════════
# Planning & firing
# ═══════════════════════════════════════════════════════════════════════════


class TestPlan:
    def test_plans_each_occurrence(self, scheduler):
        keys = sorted(p.fire_key for p in scheduler.plan())
        assert keys == ["gym-15-2026-02-15T12:45", "study-30-2026-02-15T19:30"]

    def test_lookahead_limit(self, ctx, sink):
        near = ReminderScheduler(
            ctx, source=lambda: [reminder(), reminder("late", "20:00", 30)],
            sink=sink, max_lookahead=3600,
        )
        assert [p.reminder.reminder_id for p in near.plan()] == ["gym-15"]

    def test_skips_malformed_reminders(self, ctx, sink):
        scheduler = ReminderScheduler(ctx, source=lambda: [reminder(time_start="later")], sink=sink)
        assert scheduler.plan() == []

    def test_source_failure_yields_nothing(self, ctx, sink):
        def broken():
            raise ConnectionError("redis down")

        assert ReminderScheduler(ctx, source=broken, sink=sink).plan() == []

    def test_default_source_reads_store(self, ctx, sink):
        set_room_reminders(ctx, "gym", "Gym", "13:00", [15, 60])
        leads = sorted(p.reminder.minutes_before for p in ReminderScheduler(ctx, sink=sink).plan())
        assert leads == [15, 60]


class TestFire:
    def test_fires_once_per_occurrence(self, scheduler, sink):
        [pending, _] = sorted(scheduler.plan(), key=lambda p: p.delay)
        assert scheduler.fire(pending) is True
        assert scheduler.fire(pending) is False
        assert len(sink.delivered) == 1
        assert sink.delivered[0].room_id == "gym"

    def test_fired_occurrence_not_replanned(self, scheduler):
        [pending, _] = sorted(scheduler.plan(), key=lambda p: p.delay)
        scheduler.fire(pending)
        assert [p.fire_key for p in scheduler.plan()] == ["study-30-2026-02-15T19:30"]

    def test_claim_expires(self, scheduler, r):
        [pending, _] = sorted(scheduler.plan(), key=lambda p: p.delay)
        scheduler.fire(pending)
        assert r.ttl(f"{FIRED_PREFIX}{pending.fire_key}") > 0

    def test_delivery_failure_is_contained(self, ctx):
        scheduler = ReminderScheduler(ctx, source=lambda: [reminder()], sink=BrokenSink())
        [pending] = scheduler.plan()
        assert scheduler.fire(pending) is True
        assert scheduler.plan() == []

    def test_claim_failure_skips_delivery(self, frozen_now, sink):
        flaky = FlakyRedis("set", decode_responses=True)
        ctx = AccountabilityContext(redis=flaky, clock=lambda: frozen_now)
        scheduler = ReminderScheduler(ctx, source=lambda: [reminder()], sink=sink)
        [pending] = scheduler.plan()
        assert scheduler.fire(pending) is False
        assert sink.delivered == []
        assert scheduler.fire(pending) is True
        assert len(sink.delivered) == 1

    def test_redis_sink_publishes(self, r):
        pubsub = r.pubsub()
        pubsub.subscribe(REMINDER_CHANNEL)
        pubsub.get_message(timeout=1)  # subscribe ack
        pending = PendingReminder(reminder(), datetime(2026, 2, 15, 12, 45), 2700, "gym-15-2026-02-15T12:45")
        RedisNotificationSink(r).deliver(build_notification(pending))
        message = pubsub.get_message(timeout=1)
        payload = json.loads(message["data"])
        assert payload["event"] == "reminder"
        assert payload["notification"]["tag"] == "room-reminder-gym-15"


# ═══════════════════════════════════════════════════════════════════════════
# Async timers
# ═══════════════════════════════════════════════════════════════════════════


class TestTimers:
    def test_reschedule_arms_and_replaces(self, scheduler):
        async def scenario():
            first = scheduler.reschedule()
            second = scheduler.reschedule()
            armed = scheduler.armed
            scheduler.clear()
            await asyncio.sleep(0)
            return first, second, armed, scheduler.armed

        assert asyncio.run(scenario()) == (2, 2, 2, 0)

    def test_timer_fires_after_delay(self, scheduler, sink):
        async def scenario():
            [pending, _] = sorted(scheduler.plan(), key=lambda p: p.delay)
            due_now = PendingReminder(pending.reminder, pending.fire_at, 0, pending.fire_key)
            await scheduler._fire_after(due_now)

        asyncio.run(scenario())
        assert [n.tag for n in sink.delivered] == ["room-reminder-gym-15"]

    def test_run_until_stopped(self, ctx, sink):
        scheduler = ReminderScheduler(ctx, source=lambda: [reminder()], sink=sink, tick_seconds=0.01)

        async def scenario():
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0.05)
            armed = scheduler.armed
            scheduler.stop()
            await asyncio.wait_for(task, timeout=1)
            return armed

        assert asyncio.run(scenario()) == 1
        assert scheduler.armed == 0
        assert sink.delivered == []

    def test_run_survives_redis_outage(self, frozen_now, sink):
        flaky = FlakyRedis("exists", decode_responses=True)
        ctx = AccountabilityContext(redis=flaky, clock=lambda: frozen_now)
        scheduler = ReminderScheduler(ctx, source=lambda: [reminder()], sink=sink, tick_seconds=0.01)

        async def scenario():
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0.05)
            alive = not task.done()
            armed = scheduler.armed
            scheduler.stop()
            await asyncio.wait_for(task, timeout=1)
            return alive, armed

        assert asyncio.run(scenario()) == (True, 1)

    def test_stop_before_run(self, scheduler):
        scheduler.stop()

        async def scenario():
            await asyncio.wait_for(scheduler.run(), timeout=1)
            return scheduler.armed

        assert asyncio.run(scenario()) == 0
