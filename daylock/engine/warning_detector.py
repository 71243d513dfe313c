"""Behavioral warning detection: pure functions.

Five independent rules run over one record history. Each rule emits at
most one warning, so an evaluation yields 0-5 warnings in rule order.
Thresholds live in WarningThresholds; defaults come from settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, Optional

from daylock.config.settings import (
    WARNING_CONSECUTIVE_MISSES,
    WARNING_INACTIVITY_DAYS,
    WARNING_LOW_QUALITY_AVG,
    WARNING_LOW_RATE_PERCENT,
    WARNING_RATE_MIN_RECORDS,
    WARNING_RATE_WINDOW_DAYS,
    WARNING_REJECTION_COUNT,
    WARNING_REJECTION_WINDOW,
)
from daylock.engine.discipline import average_quality, round_half_up
from daylock.models.record import AttendanceRecord, RecordStatus

logger = logging.getLogger(__name__)


class Severity:
    INFO = "info"
    WARNING = "warning"
    STRIKE = "strike"


@dataclass(frozen=True)
class WarningThresholds:
    consecutive_misses: int = WARNING_CONSECUTIVE_MISSES
    rate_window_days: int = WARNING_RATE_WINDOW_DAYS
    rate_min_records: int = WARNING_RATE_MIN_RECORDS
    low_rate_percent: int = WARNING_LOW_RATE_PERCENT
    rejection_window: int = WARNING_REJECTION_WINDOW
    rejection_count: int = WARNING_REJECTION_COUNT
    low_quality_avg: float = WARNING_LOW_QUALITY_AVG
    inactivity_days: int = WARNING_INACTIVITY_DAYS


@dataclass(frozen=True)
class WarningTrigger:
    id: str
    label: str
    severity: str
    message: Callable[[object], str]


WARNING_TRIGGERS: dict[str, WarningTrigger] = {
    "CONSECUTIVE_MISSES": WarningTrigger(
        "CONSECUTIVE_MISSES", "Consecutive Misses", Severity.WARNING,
        lambda count: f"{count} consecutive days missed. This pattern needs attention.",
    ),
    "LOW_ATTENDANCE_RATE": WarningTrigger(
        "LOW_ATTENDANCE_RATE", "Low Attendance Rate", Severity.WARNING,
        lambda rate: f"Attendance rate dropped to {rate}%. Below acceptable threshold.",
    ),
    "REPEATED_REJECTIONS": WarningTrigger(
        "REPEATED_REJECTIONS", "Repeated Rejections", Severity.STRIKE,
        lambda count: f"{count} proofs rejected recently. Quality standards not being met.",
    ),
    "LOW_QUALITY_AVG": WarningTrigger(
        "LOW_QUALITY_AVG", "Low Quality Average", Severity.WARNING,
        lambda avg: f"Average quality rating is {avg}/5. Effort may be declining.",
    ),
    "WEEK_WITHOUT_SUBMISSION": WarningTrigger(
        "WEEK_WITHOUT_SUBMISSION", "No Submissions", Severity.STRIKE,
        lambda days: f"No proof submitted in {days} days. User may have disengaged.",
    ),
}


@dataclass(frozen=True)
class PatternWarning:
    trigger_id: str
    label: str
    severity: str
    value: float
    message: str


def _emit(trigger_id: str, value) -> PatternWarning:
    trigger = WARNING_TRIGGERS[trigger_id]
    return PatternWarning(
        trigger_id=trigger.id,
        label=trigger.label,
        severity=trigger.severity,
        value=value,
        message=trigger.message(value),
    )


# ── Rules ────────────────────────────────────────────────────────────────
# Each rule takes the newest-first history and returns a PatternWarning or None.

def _consecutive_misses(ordered, recent, today, t: WarningThresholds) -> Optional[PatternWarning]:
    count = 0
    for record in ordered:
        if record.status != RecordStatus.MISSED:
            break
        count += 1
    if count >= t.consecutive_misses:
        return _emit("CONSECUTIVE_MISSES", count)
    return None


def _low_attendance_rate(ordered, recent, today, t: WarningThresholds) -> Optional[PatternWarning]:
    if len(recent) < t.rate_min_records:
        return None
    approved = sum(1 for r in recent if r.status == RecordStatus.APPROVED)
    rate = int(round_half_up(approved / len(recent) * 100))
    if rate < t.low_rate_percent:
        return _emit("LOW_ATTENDANCE_RATE", rate)
    return None


def _repeated_rejections(ordered, recent, today, t: WarningThresholds) -> Optional[PatternWarning]:
    rejections = sum(1 for r in ordered[:t.rejection_window] if r.status == RecordStatus.REJECTED)
    if rejections >= t.rejection_count:
        return _emit("REPEATED_REJECTIONS", rejections)
    return None


def _low_quality_average(ordered, recent, today, t: WarningThresholds) -> Optional[PatternWarning]:
    avg = average_quality(recent)
    if avg is not None and avg < t.low_quality_avg:
        return _emit("LOW_QUALITY_AVG", avg)
    return None


def _prolonged_inactivity(ordered, recent, today, t: WarningThresholds) -> Optional[PatternWarning]:
    last = next((r for r in ordered if r.status != RecordStatus.MISSED), None)
    if last is None:
        return None
    days_since = (today - last.date).days
    if days_since >= t.inactivity_days:
        return _emit("WEEK_WITHOUT_SUBMISSION", days_since)
    return None


RULES = (
    _consecutive_misses,
    _low_attendance_rate,
    _repeated_rejections,
    _low_quality_average,
    _prolonged_inactivity,
)


def detect_warnings(
    records: Iterable[AttendanceRecord],
    today: Optional[date] = None,
    thresholds: Optional[WarningThresholds] = None,
) -> list[PatternWarning]:
    """Scan a record history and return every triggered warning."""
    ordered = sorted(records, key=lambda r: r.date, reverse=True)
    if not ordered:
        return []
    today = today or date.today()
    thresholds = thresholds or WarningThresholds()

    window_start = today - timedelta(days=thresholds.rate_window_days)
    recent = [r for r in ordered if r.date >= window_start]

    warnings = []
    for rule in RULES:
        warning = rule(ordered, recent, today, thresholds)
        if warning is not None:
            warnings.append(warning)

    if warnings:
        logger.debug(f"Warnings detected: {[w.trigger_id for w in warnings]}")
    return warnings
