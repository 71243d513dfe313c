"""Tests for daylock.engine.escalation: next tier suggestion and summaries."""

import pytest
from datetime import datetime, timedelta

from daylock.engine.escalation import expired_consequences, next_level, summarize
from daylock.models.record import CONSEQUENCE_LEVELS, Consequence, ConsequenceLevel


def make(level, active=True, **kw):
    kw.setdefault("created_at", datetime(2026, 2, 1, 9, 0))
    return Consequence(level=level, reason="test", active=active, **kw)


class TestNextLevel:
    def test_empty_history_starts_at_warning(self):
        assert next_level([]) == ConsequenceLevel.WARNING

    def test_only_resolved_history_starts_over(self):
        history = [make(ConsequenceLevel.PROBATION, active=False)]
        assert next_level(history) == ConsequenceLevel.WARNING

    @pytest.mark.parametrize("current,expected", [
        (ConsequenceLevel.WARNING, ConsequenceLevel.STRIKE),
        (ConsequenceLevel.STRIKE, ConsequenceLevel.PROBATION),
        (ConsequenceLevel.PROBATION, ConsequenceLevel.FINAL_WARNING),
        (ConsequenceLevel.FINAL_WARNING, ConsequenceLevel.REMOVAL),
    ])
    def test_escalates_one_tier(self, current, expected):
        assert next_level([make(current)]) == expected

    def test_saturates_at_removal(self):
        assert next_level([make(ConsequenceLevel.REMOVAL)]) == ConsequenceLevel.REMOVAL

    def test_uses_highest_active_tier(self):
        history = [
            make(ConsequenceLevel.WARNING),
            make(ConsequenceLevel.FINAL_WARNING, active=False),
            make(ConsequenceLevel.PROBATION),
            make(ConsequenceLevel.STRIKE),
        ]
        assert next_level(history) == ConsequenceLevel.FINAL_WARNING

    def test_unknown_levels_do_not_rank(self):
        assert next_level([make("banished")]) == ConsequenceLevel.WARNING

    def test_accepts_generator(self):
        assert next_level(make(level) for level in CONSEQUENCE_LEVELS[:2]) == ConsequenceLevel.PROBATION


class TestSummarize:
    def test_empty(self):
        summary = summarize([])
        assert summary.active == []
        assert summary.resolved == []
        assert summary.highest is None
        assert summary.total == 0

    def test_partitions_and_highest(self):
        strike = make(ConsequenceLevel.STRIKE)
        probation = make(ConsequenceLevel.PROBATION)
        resolved = make(ConsequenceLevel.REMOVAL, active=False)
        summary = summarize([strike, resolved, probation])
        assert summary.active == [strike, probation]
        assert summary.resolved == [resolved]
        assert summary.highest is probation
        assert summary.total == 3

    def test_no_active_means_no_highest(self):
        summary = summarize([make(ConsequenceLevel.WARNING, active=False)])
        assert summary.highest is None

    def test_first_of_equal_tier_wins(self):
        first = make(ConsequenceLevel.STRIKE)
        second = make(ConsequenceLevel.STRIKE)
        assert summarize([first, second]).highest is first


class TestExpiry:
    def test_expired_active_consequences(self):
        now = datetime(2026, 2, 15, 12, 0)
        expired = make(ConsequenceLevel.WARNING, expires_at=now - timedelta(hours=1))
        running = make(ConsequenceLevel.STRIKE, expires_at=now + timedelta(days=3))
        open_ended = make(ConsequenceLevel.PROBATION)
        already_resolved = make(ConsequenceLevel.WARNING, active=False, expires_at=now - timedelta(days=1))
        result = expired_consequences([expired, running, open_ended, already_resolved], now)
        assert result == [expired]

    def test_expiry_does_not_change_suggestion(self):
        now = datetime(2026, 2, 15, 12, 0)
        history = [make(ConsequenceLevel.STRIKE, expires_at=now - timedelta(days=1))]
        assert next_level(history) == ConsequenceLevel.PROBATION
