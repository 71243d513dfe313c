"""Discipline points: pure functions.

Point table:
  approved     +10 per record
  missed       -15 per record
  rejected      -5 per record
  reflection    +5 per missed record carrying a reflection note (on top of the miss)
  streak bonus  +2 per day of the current streak, recomputed on every call

The total is floored at 0; the breakdown keeps the raw signed values so a
caller can itemise them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from daylock.models.record import AttendanceRecord, RecordStatus

logger = logging.getLogger(__name__)

POINT_VALUES = {
    "approved": 10,
    "streak_bonus": 2,
    "missed": -15,
    "rejected": -5,
    "reflection": 5,
}

# (minimum points, level, title), highest first
DISCIPLINE_LEVELS: list[tuple[int, int, str]] = [
    (500, 5, "Iron Will"),
    (300, 4, "Unshakeable"),
    (150, 3, "Consistent"),
    (50, 2, "Progressing"),
    (10, 1, "Getting Started"),
    (0, 0, "Unranked"),
]

QUALITY_LEVELS: dict[int, str] = {
    1: "Poor",
    2: "Below Average",
    3: "Average",
    4: "Good",
    5: "Excellent",
}


@dataclass
class PointsBreakdown:
    approved: int = 0
    streak_bonus: int = 0
    missed: int = 0
    rejected: int = 0
    reflections: int = 0

    @property
    def raw_total(self) -> int:
        return self.approved + self.streak_bonus + self.missed + self.rejected + self.reflections


@dataclass
class DisciplinePoints:
    total: int = 0
    breakdown: PointsBreakdown = field(default_factory=PointsBreakdown)
    level: int = 0
    title: str = "Unranked"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero for positives, the way scores are displayed."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def get_discipline_level(points: int) -> tuple[int, str]:
    for minimum, level, title in DISCIPLINE_LEVELS:
        if points >= minimum:
            return level, title
    return 0, "Unranked"


def calculate_discipline_points(
    records: Iterable[AttendanceRecord],
    current_streak: Optional[int] = 0,
) -> DisciplinePoints:
    breakdown = PointsBreakdown()

    for record in records:
        if record.status == RecordStatus.APPROVED:
            breakdown.approved += POINT_VALUES["approved"]
        elif record.status == RecordStatus.MISSED:
            breakdown.missed += POINT_VALUES["missed"]
            if record.is_reflection:
                breakdown.reflections += POINT_VALUES["reflection"]
        elif record.status == RecordStatus.REJECTED:
            breakdown.rejected += POINT_VALUES["rejected"]

    breakdown.streak_bonus = max(0, current_streak or 0) * POINT_VALUES["streak_bonus"]

    total = max(0, breakdown.raw_total)
    level, title = get_discipline_level(total)
    logger.debug(f"Discipline points: raw={breakdown.raw_total} total={total} level={level}")
    return DisciplinePoints(total=total, breakdown=breakdown, level=level, title=title)


# ── Quality Helpers ──────────────────────────────────────────────────────

def get_quality_label(rating) -> str:
    """Label for a 1-5 rating; anything else reads as Average."""
    try:
        return QUALITY_LEVELS.get(int(rating), QUALITY_LEVELS[3])
    except (TypeError, ValueError, OverflowError):
        return QUALITY_LEVELS[3]


def average_quality(records: Iterable[AttendanceRecord]) -> Optional[float]:
    """Mean of the valid quality ratings to one decimal, or None if there are none."""
    ratings = [r.quality_rating for r in records if r.has_quality]
    if not ratings:
        return None
    return round_half_up(sum(ratings) / len(ratings), 1)
