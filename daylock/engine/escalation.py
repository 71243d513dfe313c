"""Consequence escalation: pure functions, advisory only.

Severity scale: warning < strike < probation < final_warning < removal.
The engine suggests the next tier; an operator issues it. Consequences are
never mutated here, a resolved one stays in the history as audit trail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from daylock.models.record import CONSEQUENCE_LEVELS, Consequence, to_utc

logger = logging.getLogger(__name__)


@dataclass
class ConsequenceSummary:
    active: list[Consequence] = field(default_factory=list)
    resolved: list[Consequence] = field(default_factory=list)
    highest: Optional[Consequence] = None    # most severe active consequence
    total: int = 0


def next_level(consequences: Iterable[Consequence]) -> str:
    """Suggest one tier past the highest active consequence, saturating at removal."""
    active = [c for c in consequences if c.active]
    if not active:
        return CONSEQUENCE_LEVELS[0]

    # rank r sits at index r - 1, so the top rank indexes the next tier
    top = max(c.rank for c in active)
    suggestion = CONSEQUENCE_LEVELS[min(top, len(CONSEQUENCE_LEVELS) - 1)]
    logger.debug(f"Escalation suggestion: {suggestion} ({len(active)} active)")
    return suggestion


def summarize(consequences: Iterable[Consequence]) -> ConsequenceSummary:
    consequences = list(consequences)
    active = [c for c in consequences if c.active]
    resolved = [c for c in consequences if not c.active]

    highest = None
    for c in active:
        if c.rank > 0 and (highest is None or c.rank > highest.rank):
            highest = c

    return ConsequenceSummary(
        active=active,
        resolved=resolved,
        highest=highest,
        total=len(consequences),
    )


def expired_consequences(consequences: Iterable[Consequence], now: datetime) -> list[Consequence]:
    """Active consequences whose expiry has passed, for the caller to resolve."""
    now = to_utc(now)
    return [
        c for c in consequences
        if c.active and c.expires_at is not None and c.expires_at <= now
    ]
