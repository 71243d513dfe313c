"""Application-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

# ── Warning Detection ────────────────────────────────────────────────────

WARNING_CONSECUTIVE_MISSES: int = int(os.getenv("WARNING_CONSECUTIVE_MISSES", "3"))
WARNING_RATE_WINDOW_DAYS: int = int(os.getenv("WARNING_RATE_WINDOW_DAYS", "14"))
WARNING_RATE_MIN_RECORDS: int = int(os.getenv("WARNING_RATE_MIN_RECORDS", "5"))
WARNING_LOW_RATE_PERCENT: int = int(os.getenv("WARNING_LOW_RATE_PERCENT", "50"))
WARNING_REJECTION_WINDOW: int = int(os.getenv("WARNING_REJECTION_WINDOW", "7"))
WARNING_REJECTION_COUNT: int = int(os.getenv("WARNING_REJECTION_COUNT", "3"))
WARNING_LOW_QUALITY_AVG: float = float(os.getenv("WARNING_LOW_QUALITY_AVG", "2.0"))
WARNING_INACTIVITY_DAYS: int = int(os.getenv("WARNING_INACTIVITY_DAYS", "7"))

# ── Weekly Aggregation ───────────────────────────────────────────────────

# Python weekday number the week starts on (0 = Monday ... 6 = Sunday)
WEEK_START_DAY: int = int(os.getenv("WEEK_START_DAY", "6"))

# ── Reminder Scheduling ──────────────────────────────────────────────────

REMINDER_TICK_SECONDS: int = int(os.getenv("REMINDER_TICK_SECONDS", "60"))
# Only arm timers for occurrences within the next 24 hours + 1 minute
REMINDER_MAX_LOOKAHEAD_SECONDS: int = int(os.getenv("REMINDER_MAX_LOOKAHEAD_SECONDS", "86460"))
REMINDER_FIRED_TTL_SECONDS: int = int(os.getenv("REMINDER_FIRED_TTL_SECONDS", "172800"))
REMINDER_CHANNEL: str = os.getenv("REMINDER_CHANNEL", "reminder:events")
