"""Streak tracking and streak identity phases: pure functions.

A streak is the run of consecutive calendar days with an approved record.
It stays alive while the most recent approved day is today or yesterday,
which leaves one full day of grace before it counts as broken.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from daylock.models.record import AttendanceRecord, RecordStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_streak: int = 0     # length of the run that went cold; 0 while alive


@dataclass(frozen=True)
class StreakPhase:
    min: int
    max: float
    label: str
    emoji: str


STREAK_PHASES: list[StreakPhase] = [
    StreakPhase(0, 0, "Start Today", "⚡"),
    StreakPhase(1, 2, "Newcomer", "🌱"),
    StreakPhase(3, 6, "Building", "🔨"),
    StreakPhase(7, 13, "Committed", "💪"),
    StreakPhase(14, 29, "Warrior", "⚔️"),
    StreakPhase(30, 59, "Disciplined", "🎯"),
    StreakPhase(60, 99, "Elite", "🏆"),
    StreakPhase(100, math.inf, "Legend", "👑"),
]


def _runs(days: list[date]) -> list[int]:
    """Split newest-first unique days into consecutive-day run lengths."""
    runs: list[int] = []
    length = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days == 1:
            length += 1
        else:
            runs.append(length)
            length = 1
    runs.append(length)
    return runs


def calculate_streak(
    records: Iterable[AttendanceRecord],
    today: Optional[date] = None,
) -> StreakState:
    """Derive current, longest and last-broken streak from a record history.

    Records may arrive in any order and may repeat a date.
    """
    today = today or date.today()
    days = sorted(
        {r.date for r in records if r.status == RecordStatus.APPROVED},
        reverse=True,
    )
    if not days:
        return StreakState()

    runs = _runs(days)
    alive = days[0] in (today, today - timedelta(days=1))
    current = runs[0] if alive else 0
    last_streak = 0 if alive else runs[0]

    state = StreakState(current=current, longest=max(runs), last_streak=last_streak)
    logger.debug(f"Streak computed: {state}")
    return state


# ── Identity Phases ──────────────────────────────────────────────────────

def get_streak_phase(streak: int) -> StreakPhase:
    s = max(0, streak or 0)
    for phase in STREAK_PHASES:
        if phase.min <= s <= phase.max:
            return phase
    return STREAK_PHASES[0]


def get_phase_progress(streak: int) -> int:
    """Progress through the current phase, 0-100. Always 100 at the top phase."""
    s = max(0, streak or 0)
    phase = get_streak_phase(s)
    if phase.max == math.inf:
        return 100
    span = phase.max - phase.min + 1
    return min(100, math.floor((s - phase.min) / span * 100 + 0.5))


def get_next_phase(streak: int) -> Optional[StreakPhase]:
    idx = STREAK_PHASES.index(get_streak_phase(streak))
    if idx >= len(STREAK_PHASES) - 1:
        return None
    return STREAK_PHASES[idx + 1]


def get_days_to_next_phase(streak: int) -> int:
    s = max(0, streak or 0)
    nxt = get_next_phase(s)
    if nxt is None:
        return 0
    return nxt.min - s
