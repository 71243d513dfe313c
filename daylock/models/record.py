"""Attendance, window and consequence models for the accountability engine.

Plain dataclasses: the engine only reads snapshots of these, the record
store is the only place they are serialised.
"""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, time, timezone
from typing import Optional

# A note at least this long on a missed record counts as a reflection
REFLECTION_MIN_LENGTH = 20


class RecordStatus:
    APPROVED = "approved"
    REJECTED = "rejected"
    MISSED = "missed"
    PENDING_REVIEW = "pending_review"


class ConsequenceLevel:
    WARNING = "warning"
    STRIKE = "strike"
    PROBATION = "probation"
    FINAL_WARNING = "final_warning"
    REMOVAL = "removal"


# Escalation order, least to most severe
CONSEQUENCE_LEVELS: tuple[str, ...] = (
    ConsequenceLevel.WARNING,
    ConsequenceLevel.STRIKE,
    ConsequenceLevel.PROBATION,
    ConsequenceLevel.FINAL_WARNING,
    ConsequenceLevel.REMOVAL,
)

CONSEQUENCE_LEVEL_INFO: dict[str, dict] = {
    ConsequenceLevel.WARNING: {"rank": 1, "label": "Warning"},
    ConsequenceLevel.STRIKE: {"rank": 2, "label": "Strike"},
    ConsequenceLevel.PROBATION: {"rank": 3, "label": "Probation"},
    ConsequenceLevel.FINAL_WARNING: {"rank": 4, "label": "Final Warning"},
    ConsequenceLevel.REMOVAL: {"rank": 5, "label": "Removal"},
}


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValueError("record date is required")
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def to_utc(value: datetime) -> datetime:
    """Aware UTC instant. Naive values are read as local wall-clock time."""
    return value.astimezone(timezone.utc)


def parse_time_of_day(value) -> Optional[time]:
    """Parse "HH:MM" or "HH:MM:SS" into a time. Returns None when malformed."""
    if isinstance(value, time):
        return value
    if not value or not isinstance(value, str):
        return None
    parts = value.strip()[:5].split(":")
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return time(hours, minutes)


@dataclass(frozen=True)
class AttendanceRecord:
    date: date
    status: str
    quality_rating: Optional[int] = None  # 1-5, set by the reviewer
    note: str = ""

    @property
    def has_quality(self) -> bool:
        """True when the rating is a finite number inside 1-5."""
        rating = self.quality_rating
        if rating is None or isinstance(rating, bool):
            return False
        if not isinstance(rating, (int, float)) or not math.isfinite(rating):
            return False
        return 1 <= rating <= 5

    @property
    def is_reflection(self) -> bool:
        return self.status == RecordStatus.MISSED and len(self.note or "") >= REFLECTION_MIN_LENGTH

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "status": self.status,
            "quality_rating": self.quality_rating,
            "note": self.note or "",
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> AttendanceRecord:
        rating = data.get("quality_rating")
        if isinstance(rating, str):
            try:
                rating = float(rating)
            except ValueError:
                rating = None
        return cls(
            date=_parse_date(data.get("date")),
            status=data.get("status", RecordStatus.PENDING_REVIEW),
            quality_rating=rating,
            note=data.get("note") or "",
        )


@dataclass(frozen=True)
class TimeWindow:
    """Daily time-of-day interval. end <= start means it crosses midnight."""
    start: Optional[str]
    end: Optional[str]


@dataclass
class Consequence:
    """Operator-issued sanction. Timestamps are held as aware UTC instants."""

    level: str
    reason: str = ""
    active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None
    notes: str = ""
    consequence_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self):
        self.created_at = to_utc(self.created_at)
        if self.expires_at is not None:
            self.expires_at = to_utc(self.expires_at)

    @property
    def rank(self) -> int:
        """1-5 severity, 0 for a level outside the scale."""
        return CONSEQUENCE_LEVEL_INFO.get(self.level, {}).get("rank", 0)

    @property
    def label(self) -> str:
        return CONSEQUENCE_LEVEL_INFO.get(self.level, {}).get("label", self.level)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat()
        d["expires_at"] = self.expires_at.isoformat() if self.expires_at else ""
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Consequence:
        data = dict(data)  # copy
        active = data.get("active", True)
        if isinstance(active, str):
            active = active.lower() in ("1", "true", "yes")
        data["active"] = bool(active)
        created = _parse_datetime(data.get("created_at"))
        if created is None:
            raise ValueError("consequence created_at is required")
        data["created_at"] = created
        data["expires_at"] = _parse_datetime(data.get("expires_at"))
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
