"""Weekly aggregation and week-over-week trend: pure functions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from daylock.config.settings import WEEK_START_DAY
from daylock.engine.discipline import round_half_up
from daylock.models.record import AttendanceRecord, RecordStatus

# Week-over-week rate change (percentage points) that counts as a trend
TREND_THRESHOLD = 5


@dataclass
class WeekBucket:
    week_start: date
    total: int = 0
    approved: int = 0
    rejected: int = 0
    missed: int = 0
    quality_sum: float = 0
    quality_count: int = 0

    @property
    def week_end(self) -> date:
        """Exclusive end of the week."""
        return self.week_start + timedelta(days=7)

    @property
    def rate(self) -> int:
        if self.total == 0:
            return 0
        return int(round_half_up(self.approved / self.total * 100))

    @property
    def avg_quality(self) -> Optional[float]:
        if self.quality_count == 0:
            return None
        return round_half_up(self.quality_sum / self.quality_count, 1)


@dataclass(frozen=True)
class Trend:
    direction: str   # improving | declining | stable
    change: int


def week_start_for(day: date, week_start: int = WEEK_START_DAY) -> date:
    """First day of the week containing ``day``; week_start is a Python weekday."""
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def compute_weekly_stats(
    records: Iterable[AttendanceRecord],
    week_start: int = WEEK_START_DAY,
) -> list[WeekBucket]:
    """One bucket per week present in the input, newest week first."""
    buckets: dict[date, WeekBucket] = {}
    for record in records:
        key = week_start_for(record.date, week_start)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = WeekBucket(week_start=key)

        bucket.total += 1
        if record.status == RecordStatus.APPROVED:
            bucket.approved += 1
        elif record.status == RecordStatus.REJECTED:
            bucket.rejected += 1
        elif record.status == RecordStatus.MISSED:
            bucket.missed += 1
        if record.has_quality:
            bucket.quality_sum += record.quality_rating
            bucket.quality_count += 1

    return sorted(buckets.values(), key=lambda b: b.week_start, reverse=True)


def records_in_week(records: Iterable[AttendanceRecord], bucket: WeekBucket) -> list[AttendanceRecord]:
    """Records falling inside a bucket's [week_start, week_end) range."""
    return [r for r in records if bucket.week_start <= r.date < bucket.week_end]


def compute_trend(buckets: list[WeekBucket]) -> Trend:
    """Compare the two most recent weeks' rates."""
    if len(buckets) < 2:
        return Trend(direction="stable", change=0)

    change = buckets[0].rate - buckets[1].rate
    if change > TREND_THRESHOLD:
        return Trend(direction="improving", change=change)
    if change < -TREND_THRESHOLD:
        return Trend(direction="declining", change=change)
    return Trend(direction="stable", change=change)
