"""One-shot evaluation of a member's accountability state.

Runs every engine component over the same snapshot and the same instant,
so all derived facts in a report agree with each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from daylock.config.settings import WEEK_START_DAY
from daylock.engine.discipline import DisciplinePoints, calculate_discipline_points
from daylock.engine.escalation import ConsequenceSummary, next_level, summarize
from daylock.engine.pressure import needs_reflection
from daylock.engine.streak import StreakPhase, StreakState, calculate_streak, get_streak_phase
from daylock.engine.warning_detector import PatternWarning, WarningThresholds, detect_warnings
from daylock.engine.weekly import Trend, WeekBucket, compute_trend, compute_weekly_stats
from daylock.engine.window import WindowState, evaluate_window
from daylock.models.record import AttendanceRecord, Consequence, TimeWindow


@dataclass
class MemberReport:
    evaluated_at: datetime
    streak: StreakState
    phase: StreakPhase
    points: DisciplinePoints
    window: WindowState
    warnings: list[PatternWarning]
    suggested_level: str
    consequences: ConsequenceSummary
    weeks: list[WeekBucket]
    trend: Trend
    pending_reflections: list[AttendanceRecord]


def build_report(
    records: Iterable[AttendanceRecord],
    consequences: Iterable[Consequence] = (),
    window: Optional[TimeWindow] = None,
    now: Optional[datetime] = None,
    thresholds: Optional[WarningThresholds] = None,
    week_start: int = WEEK_START_DAY,
) -> MemberReport:
    now = now or datetime.now()
    today = now.date()
    records = list(records)
    consequences = list(consequences)

    streak = calculate_streak(records, today=today)
    weeks = compute_weekly_stats(records, week_start=week_start)

    return MemberReport(
        evaluated_at=now,
        streak=streak,
        phase=get_streak_phase(streak.current),
        points=calculate_discipline_points(records, streak.current),
        window=evaluate_window(window, now),
        warnings=detect_warnings(records, today=today, thresholds=thresholds),
        suggested_level=next_level(consequences),
        consequences=summarize(consequences),
        weeks=weeks,
        trend=compute_trend(weeks),
        pending_reflections=needs_reflection(records, today=today),
    )
