"""Shared test fixtures for the daylock test suite."""

import pytest
import fakeredis
from datetime import date, datetime, timedelta

from daylock.models.record import AttendanceRecord, RecordStatus
from daylock.services.context import AccountabilityContext


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


# ── Time Freezing ───────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Return a fixed 'now' for deterministic tests.

    Default: 2026-02-15T12:00:00 local time (noon on a Sunday).
    """
    return datetime(2026, 2, 15, 12, 0, 0)


@pytest.fixture
def today(frozen_now) -> date:
    return frozen_now.date()


@pytest.fixture
def ctx(r, frozen_now):
    """Context bound to fakeredis and the frozen clock."""
    return AccountabilityContext(redis=r, clock=lambda: frozen_now)


# ── Record Factories ────────────────────────────────────────────────────

@pytest.fixture
def make_record(today):
    """Factory fixture building records relative to ``today``.

    Usage:
        record = make_record(2, RecordStatus.MISSED, note="...")   # two days ago
    """
    def _factory(days_ago=0, status=RecordStatus.APPROVED, quality_rating=None, note=""):
        return AttendanceRecord(
            date=today - timedelta(days=days_ago),
            status=status,
            quality_rating=quality_rating,
            note=note,
        )

    return _factory


@pytest.fixture
def approved_days(make_record):
    """Build approved records for each ``days_ago`` value given."""
    def _factory(*days_ago):
        return [make_record(d, RecordStatus.APPROVED) for d in days_ago]

    return _factory
