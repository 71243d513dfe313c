"""Room window evaluation: pure functions, no clock access unless defaulted.

Given a daily time window and an instant, report whether the window is
open and how long until it closes (open) or next opens (closed).

A window whose end is at or before its start crosses midnight: an instant
before the end belongs to the window that opened the previous day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from daylock.models.record import TimeWindow, parse_time_of_day


class Urgency:
    CRITICAL = "critical"   # <= 5 min left
    HIGH = "high"           # <= 15 min left
    MEDIUM = "medium"       # <= 30 min left
    LOW = "low"
    LOCKED = "locked"       # window closed
    NONE = "none"           # no usable schedule


# (max seconds remaining, urgency), tightest first
URGENCY_TIERS: list[tuple[int, str]] = [
    (300, Urgency.CRITICAL),
    (900, Urgency.HIGH),
    (1800, Urgency.MEDIUM),
]


@dataclass(frozen=True)
class WindowState:
    is_open: bool
    time_remaining: Optional[str]    # formatted countdown, None when disabled
    total_seconds: int
    urgency: str
    label: str                       # "Closes in" | "Opens in" | "No schedule"


DISABLED = WindowState(
    is_open=False,
    time_remaining=None,
    total_seconds=0,
    urgency=Urgency.NONE,
    label="No schedule",
)


def get_urgency_level(seconds: int) -> str:
    for limit, urgency in URGENCY_TIERS:
        if seconds <= limit:
            return urgency
    return Urgency.LOW


def format_countdown(total_seconds: int) -> str:
    """2h 05m / 4m 09s / 42s"""
    hours, rest = divmod(max(0, int(total_seconds)), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    if minutes > 0:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def _whole_seconds(delta: timedelta) -> int:
    return max(0, math.floor(delta.total_seconds()))


def evaluate_window(window: Optional[TimeWindow], now: Optional[datetime] = None) -> WindowState:
    """Open/closed state and countdown for a daily window at ``now``.

    Window bounds are built on ``now``'s own calendar day and tzinfo with
    plain wall-clock arithmetic. For a naive local ``now`` a DST change
    inside the window shifts the countdown by the DST offset; pass an aware
    ``now`` in a fixed-offset zone where that matters.
    """
    if window is None:
        return DISABLED
    start_tod = parse_time_of_day(window.start)
    end_tod = parse_time_of_day(window.end)
    if start_tod is None or end_tod is None or start_tod == end_tod:
        return DISABLED

    now = now or datetime.now()
    start = now.replace(hour=start_tod.hour, minute=start_tod.minute, second=0, microsecond=0)
    end = now.replace(hour=end_tod.hour, minute=end_tod.minute, second=0, microsecond=0)

    if end <= start:
        if now < end:
            start -= timedelta(days=1)
        else:
            end += timedelta(days=1)

    if start <= now <= end:
        remaining = _whole_seconds(end - now)
        return WindowState(
            is_open=True,
            time_remaining=format_countdown(remaining),
            total_seconds=remaining,
            urgency=get_urgency_level(remaining),
            label="Closes in",
        )

    next_start = start
    if now > end:
        next_start += timedelta(days=1)
    until_open = _whole_seconds(next_start - now)
    return WindowState(
        is_open=False,
        time_remaining=format_countdown(until_open),
        total_seconds=until_open,
        urgency=Urgency.LOCKED,
        label="Opens in",
    )
