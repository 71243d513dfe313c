"""Request-scoped context handed to every collaborator call.

Replaces module-level singletons (shared Redis handles, cached clocks):
callers build one context per request or per loop and pass it down.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import redis

from daylock.config.settings import REDIS_URL, WEEK_START_DAY
from daylock.engine.warning_detector import WarningThresholds


@dataclass
class AccountabilityContext:
    redis: redis.Redis
    clock: Callable[[], datetime] = datetime.now
    thresholds: WarningThresholds = field(default_factory=WarningThresholds)
    week_start: int = WEEK_START_DAY

    def now(self) -> datetime:
        return self.clock()

    @classmethod
    def from_settings(cls) -> AccountabilityContext:
        return cls(redis=redis.Redis.from_url(REDIS_URL, decode_responses=True))
