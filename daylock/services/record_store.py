"""Redis-backed persistence for attendance, consequences and reminders.

Layout:
  attendance:{room}:{user}     hash  date (ISO) -> record JSON (upsert by date)
  consequences:{room}:{user}   hash  consequence_id -> consequence JSON (never deleted)
  reminder:{reminder_id}       string reminder JSON
  reminders:room:{room}        set of reminder ids
  reminders:all                set of reminder ids
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Optional

from daylock.engine.escalation import next_level
from daylock.engine.report import MemberReport, build_report
from daylock.models.messages import Reminder
from daylock.models.record import (
    CONSEQUENCE_LEVELS,
    AttendanceRecord,
    Consequence,
    TimeWindow,
)
from daylock.services.context import AccountabilityContext

logger = logging.getLogger(__name__)

ATTENDANCE_PREFIX = "attendance:"
CONSEQUENCE_PREFIX = "consequences:"
REMINDER_PREFIX = "reminder:"
ROOM_REMINDERS_PREFIX = "reminders:room:"
ALL_REMINDERS_KEY = "reminders:all"


def _attendance_key(room_id: str, user_id: str) -> str:
    return f"{ATTENDANCE_PREFIX}{room_id}:{user_id}"


def _consequence_key(room_id: str, user_id: str) -> str:
    return f"{CONSEQUENCE_PREFIX}{room_id}:{user_id}"


# ── Attendance ───────────────────────────────────────────────────────────

def save_record(ctx: AccountabilityContext, room_id: str, user_id: str, record: AttendanceRecord) -> None:
    """Store a record, replacing any existing record for the same date."""
    ctx.redis.hset(_attendance_key(room_id, user_id), record.date.isoformat(), record.to_json())


def get_records(ctx: AccountabilityContext, room_id: str, user_id: str) -> list[AttendanceRecord]:
    """Full history for one room+user, newest first."""
    raw = ctx.redis.hgetall(_attendance_key(room_id, user_id))
    records = []
    for day, payload in raw.items():
        try:
            records.append(AttendanceRecord.from_dict(json.loads(payload)))
        except (json.JSONDecodeError, ValueError, TypeError) as exc:
            logger.warning("Skipping unreadable record %s for %s/%s: %s", day, room_id, user_id, exc)
    records.sort(key=lambda r: r.date, reverse=True)
    return records


# ── Consequences ─────────────────────────────────────────────────────────

def get_consequences(ctx: AccountabilityContext, room_id: str, user_id: str) -> list[Consequence]:
    """Full consequence history, oldest first."""
    raw = ctx.redis.hgetall(_consequence_key(room_id, user_id))
    consequences = []
    for cid, payload in raw.items():
        try:
            consequences.append(Consequence.from_dict(json.loads(payload)))
        except (json.JSONDecodeError, ValueError, TypeError) as exc:
            logger.warning("Skipping unreadable consequence %s: %s", cid, exc)
    consequences.sort(key=lambda c: c.created_at)
    return consequences


def _put_consequence(ctx: AccountabilityContext, room_id: str, user_id: str, c: Consequence) -> None:
    ctx.redis.hset(_consequence_key(room_id, user_id), c.consequence_id, json.dumps(c.to_dict()))


def issue_consequence(
    ctx: AccountabilityContext,
    room_id: str,
    user_id: str,
    reason: str,
    level: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    notes: str = "",
) -> Consequence:
    """Operator action: record a new consequence.

    Without an explicit level the engine's escalation suggestion is used.
    """
    if level is None:
        level = next_level(get_consequences(ctx, room_id, user_id))
    elif level not in CONSEQUENCE_LEVELS:
        raise ValueError(f"Unknown consequence level: {level!r}")

    consequence = Consequence(
        level=level,
        reason=reason,
        created_at=ctx.now(),
        expires_at=expires_at,
        notes=notes,
    )
    _put_consequence(ctx, room_id, user_id, consequence)
    logger.info(f"Issued {level} to {user_id} in {room_id}: {reason}")
    return consequence


def resolve_consequence(
    ctx: AccountabilityContext,
    room_id: str,
    user_id: str,
    consequence_id: str,
) -> Optional[Consequence]:
    """Operator action: deactivate a consequence. One-way; the record is kept."""
    payload = ctx.redis.hget(_consequence_key(room_id, user_id), consequence_id)
    if payload is None:
        logger.warning(f"Resolve requested for unknown consequence {consequence_id}")
        return None

    consequence = Consequence.from_dict(json.loads(payload))
    if consequence.active:
        consequence.active = False
        _put_consequence(ctx, room_id, user_id, consequence)
        logger.info(f"Resolved {consequence.level} {consequence_id} for {user_id} in {room_id}")
    return consequence


# ── Reminders ────────────────────────────────────────────────────────────

def set_room_reminders(
    ctx: AccountabilityContext,
    room_id: str,
    room_name: str,
    time_start: str,
    minutes_before: list[int],
    room_emoji: str = "📋",
) -> list[Reminder]:
    """Replace every reminder for a room."""
    r = ctx.redis
    room_key = f"{ROOM_REMINDERS_PREFIX}{room_id}"
    for rid in r.smembers(room_key):
        r.delete(f"{REMINDER_PREFIX}{rid}")
        r.srem(ALL_REMINDERS_KEY, rid)
    r.delete(room_key)

    reminders = []
    for minutes in sorted(set(minutes_before)):
        reminder = Reminder(
            reminder_id=uuid.uuid4().hex[:12],
            room_id=room_id,
            room_name=room_name,
            room_emoji=room_emoji,
            time_start=time_start,
            minutes_before=minutes,
        )
        r.set(f"{REMINDER_PREFIX}{reminder.reminder_id}", reminder.model_dump_json())
        r.sadd(room_key, reminder.reminder_id)
        r.sadd(ALL_REMINDERS_KEY, reminder.reminder_id)
        reminders.append(reminder)
    return reminders


def get_reminders(ctx: AccountabilityContext) -> list[Reminder]:
    reminders = []
    for rid in ctx.redis.smembers(ALL_REMINDERS_KEY):
        payload = ctx.redis.get(f"{REMINDER_PREFIX}{rid}")
        if payload:
            reminders.append(Reminder.model_validate_json(payload))
    return reminders


# ── Evaluation ───────────────────────────────────────────────────────────

def evaluate_member(
    ctx: AccountabilityContext,
    room_id: str,
    user_id: str,
    window: Optional[TimeWindow] = None,
) -> MemberReport:
    """Load a point-in-time snapshot and run the engine over it."""
    return build_report(
        get_records(ctx, room_id, user_id),
        get_consequences(ctx, room_id, user_id),
        window=window,
        now=ctx.now(),
        thresholds=ctx.thresholds,
        week_start=ctx.week_start,
    )
