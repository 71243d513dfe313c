"""Room reminder scheduling.

Re-derives every reminder's next fire time on a fixed tick (and whenever
``reschedule`` is called, e.g. after the host wakes from sleep), arms one
asyncio timer per upcoming occurrence, and delivers a ReminderNotification
through a sink when it fires.

Each occurrence has a stable fire key; the key is claimed in Redis with
SET NX before delivery, so overlapping reschedules never double-fire.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import redis

from daylock.config.settings import (
    REMINDER_CHANNEL,
    REMINDER_FIRED_TTL_SECONDS,
    REMINDER_MAX_LOOKAHEAD_SECONDS,
    REMINDER_TICK_SECONDS,
)
from daylock.models.messages import Reminder, ReminderNotification
from daylock.models.record import parse_time_of_day
from daylock.services.context import AccountabilityContext
from daylock.services.record_store import get_reminders

logger = logging.getLogger(__name__)

FIRED_PREFIX = "reminder:fired:"

REMINDER_PRESETS: list[tuple[int, str]] = [
    (1, "1 min"),
    (5, "5 min"),
    (10, "10 min"),
    (15, "15 min"),
    (30, "30 min"),
    (60, "1 hour"),
]


@dataclass(frozen=True)
class ReminderTiming:
    seconds: float
    target: datetime


@dataclass(frozen=True)
class PendingReminder:
    reminder: Reminder
    fire_at: datetime
    delay: float
    fire_key: str


def next_reminder_time(
    time_start: str,
    minutes_before: int,
    now: Optional[datetime] = None,
) -> Optional[ReminderTiming]:
    """Next instant ``minutes_before`` ahead of the room opening: today if still ahead, else tomorrow."""
    opens = parse_time_of_day(time_start)
    if opens is None:
        return None
    now = now or datetime.now()

    opens_today = now.replace(hour=opens.hour, minute=opens.minute, second=0, microsecond=0)
    target = opens_today - timedelta(minutes=minutes_before)
    if target <= now:
        target += timedelta(days=1)
    return ReminderTiming(seconds=(target - now).total_seconds(), target=target)


def format_reminder(minutes_before: int) -> str:
    if minutes_before < 60:
        return f"{minutes_before} min before"
    hours, mins = divmod(minutes_before, 60)
    if mins == 0:
        return f"{hours} hour{'s' if hours > 1 else ''} before"
    return f"{hours}h {mins}m before"


def build_notification(pending: PendingReminder) -> ReminderNotification:
    reminder = pending.reminder
    lead = format_reminder(reminder.minutes_before).replace(" before", "")
    return ReminderNotification(
        fire_key=pending.fire_key,
        room_id=reminder.room_id,
        title=f"{reminder.room_emoji} {reminder.room_name} opens soon!",
        body=f"Your room opens {lead} from now. Get ready!",
        tag=f"room-reminder-{reminder.room_id}-{reminder.minutes_before}",
        fire_at=pending.fire_at.isoformat(),
    )


class RedisNotificationSink:
    """Publishes reminder notifications on the Redis reminder channel."""

    def __init__(self, r: redis.Redis, channel: str = REMINDER_CHANNEL):
        self._redis = r
        self._channel = channel

    def deliver(self, notification: ReminderNotification) -> None:
        self._redis.publish(self._channel, json.dumps({
            "event": "reminder",
            "notification": notification.model_dump(),
        }))


class ReminderScheduler:
    """Keeps one timer armed per upcoming reminder occurrence."""

    def __init__(
        self,
        ctx: AccountabilityContext,
        source: Optional[Callable[[], list[Reminder]]] = None,
        sink=None,
        tick_seconds: float = REMINDER_TICK_SECONDS,
        max_lookahead: float = REMINDER_MAX_LOOKAHEAD_SECONDS,
    ):
        self._ctx = ctx
        self._source = source or (lambda: get_reminders(ctx))
        self._sink = sink or RedisNotificationSink(ctx.redis)
        self._tick = tick_seconds
        self._max_lookahead = max_lookahead
        self._timers: list[asyncio.Task] = []
        self._stop = asyncio.Event()

    # ── Planning ─────────────────────────────────────────────────────────

    def _already_fired(self, fire_key: str) -> bool:
        return bool(self._ctx.redis.exists(f"{FIRED_PREFIX}{fire_key}"))

    def plan(self) -> list[PendingReminder]:
        """Upcoming occurrences within the lookahead that have not fired yet."""
        try:
            reminders = self._source()
        except Exception as exc:
            logger.error("Reminder source failed: %s", exc)
            return []

        now = self._ctx.now()
        pending = []
        for reminder in reminders:
            timing = next_reminder_time(reminder.time_start, reminder.minutes_before, now)
            if timing is None:
                continue
            if timing.seconds < 0 or timing.seconds > self._max_lookahead:
                continue
            fire_key = f"{reminder.reminder_id}-{timing.target:%Y-%m-%dT%H:%M}"
            if self._already_fired(fire_key):
                continue
            pending.append(PendingReminder(reminder, timing.target, timing.seconds, fire_key))
        return pending

    # ── Firing ───────────────────────────────────────────────────────────

    def fire(self, pending: PendingReminder) -> bool:
        """Claim the occurrence and deliver it. False if already claimed or the claim failed."""
        try:
            claimed = self._ctx.redis.set(
                f"{FIRED_PREFIX}{pending.fire_key}", "1",
                nx=True, ex=REMINDER_FIRED_TTL_SECONDS,
            )
        except Exception as exc:
            logger.error("Reminder claim failed for %s: %s", pending.fire_key, exc)
            return False
        if not claimed:
            return False

        notification = build_notification(pending)
        try:
            self._sink.deliver(notification)
            logger.info(f"Reminder fired: {pending.fire_key}")
        except Exception as exc:
            logger.error("Reminder delivery failed for %s: %s", pending.fire_key, exc)
        return True

    async def _fire_after(self, pending: PendingReminder) -> None:
        await asyncio.sleep(pending.delay)
        self.fire(pending)

    # ── Timers ───────────────────────────────────────────────────────────

    def clear(self) -> None:
        for timer in self._timers:
            if not timer.done():
                timer.cancel()
        self._timers = []

    def reschedule(self) -> int:
        """Drop armed timers and arm fresh ones. Must run inside an event loop."""
        self.clear()
        for pending in self.plan():
            self._timers.append(asyncio.create_task(self._fire_after(pending)))
        logger.debug(f"Armed {len(self._timers)} reminder timers")
        return len(self._timers)

    @property
    def armed(self) -> int:
        return sum(1 for t in self._timers if not t.done())

    async def run(self) -> None:
        """Reschedule every tick until ``stop`` is called.

        A failed tick is logged and retried on the next one. Calling ``stop``
        before ``run`` makes it return without scheduling anything.
        """
        logger.info(f"Reminder scheduler started (tick={self._tick}s)")
        try:
            while not self._stop.is_set():
                try:
                    self.reschedule()
                except Exception as exc:
                    logger.error("Reminder reschedule failed: %s", exc)
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self._tick)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.clear()
            logger.info("Reminder scheduler stopped")

    def stop(self) -> None:
        self._stop.set()
