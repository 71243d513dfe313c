#!/usr/bin/env python3
"""Seed Redis with a demo member's attendance history and print their report.

Usage:
    python scripts/seed_demo.py
"""

from __future__ import annotations

import logging
from datetime import timedelta

from daylock.models.record import AttendanceRecord, RecordStatus, TimeWindow
from daylock.services.context import AccountabilityContext
from daylock.services.record_store import (
    ATTENDANCE_PREFIX,
    CONSEQUENCE_PREFIX,
    evaluate_member,
    issue_consequence,
    save_record,
    set_room_reminders,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger("seed_demo")

ROOM_ID = "room-gym"
USER_ID = "user-demo"
WINDOW = TimeWindow(start="06:00", end="09:00")

# Oldest first: (days ago, status, quality, note)
HISTORY = [
    (20, RecordStatus.APPROVED, 4, ""),
    (19, RecordStatus.APPROVED, 5, ""),
    (18, RecordStatus.MISSED, None, "Overslept after a late shift, alarm was off."),
    (17, RecordStatus.APPROVED, 3, ""),
    (12, RecordStatus.REJECTED, 1, "blurry photo"),
    (11, RecordStatus.MISSED, None, ""),
    (10, RecordStatus.APPROVED, 2, ""),
    (6, RecordStatus.APPROVED, 3, ""),
    (5, RecordStatus.APPROVED, 4, ""),
    (4, RecordStatus.REJECTED, 1, ""),
    (3, RecordStatus.APPROVED, 4, ""),
    (2, RecordStatus.APPROVED, 5, ""),
    (1, RecordStatus.APPROVED, 4, ""),
]


def clear_member(ctx: AccountabilityContext) -> None:
    ctx.redis.delete(f"{ATTENDANCE_PREFIX}{ROOM_ID}:{USER_ID}")
    ctx.redis.delete(f"{CONSEQUENCE_PREFIX}{ROOM_ID}:{USER_ID}")


def seed() -> None:
    ctx = AccountabilityContext.from_settings()
    clear_member(ctx)

    today = ctx.now().date()
    for days_ago, status, quality, note in HISTORY:
        save_record(ctx, ROOM_ID, USER_ID, AttendanceRecord(
            date=today - timedelta(days=days_ago),
            status=status,
            quality_rating=quality,
            note=note,
        ))
    issue_consequence(ctx, ROOM_ID, USER_ID, reason="Two rejected proofs in a week")
    set_room_reminders(ctx, ROOM_ID, "Morning Gym", WINDOW.start, [10, 30], room_emoji="🏋️")

    report = evaluate_member(ctx, ROOM_ID, USER_ID, WINDOW)
    log.info(f"Seeded {len(HISTORY)} records for {USER_ID} in {ROOM_ID}")

    print(f"\nStreak: {report.streak.current} (longest {report.streak.longest}) {report.phase.emoji} {report.phase.label}")
    print(f"Points: {report.points.total}, level {report.points.level} {report.points.title}")
    print(f"Window: {report.window.label} {report.window.time_remaining} [{report.window.urgency}]")
    print(f"Trend: {report.trend.direction} ({report.trend.change:+d})")
    print(f"Next consequence tier: {report.suggested_level}")
    print("\nWarnings:")
    for w in report.warnings or []:
        print(f"  [{w.severity}] {w.label}: {w.message}")
    if not report.warnings:
        print("  none")
    print("\nWeeks:")
    for week in report.weeks:
        print(f"  {week.week_start}  {week.approved}/{week.total} ({week.rate}%)  avg quality {week.avg_quality}")


if __name__ == "__main__":
    seed()
