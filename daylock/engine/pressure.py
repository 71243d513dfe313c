"""Miss detection, reflection checks and contextual pressure messages.

Pressure messages are a discriminated union keyed on ``kind``: every
category carries exactly the fields its templates read, so rendering can
never hit a missing placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Annotated, Callable, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from daylock.engine.streak import get_streak_phase
from daylock.engine.window import Urgency
from daylock.models.record import REFLECTION_MIN_LENGTH, AttendanceRecord, RecordStatus

MILESTONES = (3, 7, 14, 30, 60, 100)


# ── Miss Detection ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class RoomSummary:
    room_id: str
    name: str
    today_status: Optional[str] = None


@dataclass
class MissReport:
    missed_rooms: list[RoomSummary] = field(default_factory=list)
    rejected_rooms: list[RoomSummary] = field(default_factory=list)

    @property
    def has_missed_today(self) -> bool:
        return bool(self.missed_rooms)

    @property
    def has_rejected_today(self) -> bool:
        return bool(self.rejected_rooms)

    @property
    def miss_count(self) -> int:
        return len(self.missed_rooms)


def detect_misses(room_summaries: Iterable[RoomSummary]) -> MissReport:
    report = MissReport()
    for room in room_summaries:
        if room.today_status == RecordStatus.MISSED:
            report.missed_rooms.append(room)
        elif room.today_status == RecordStatus.REJECTED:
            report.rejected_rooms.append(room)
    return report


def needs_reflection(
    records: Iterable[AttendanceRecord],
    today: Optional[date] = None,
) -> list[AttendanceRecord]:
    """Recent misses/rejections (today or yesterday) still lacking a reflection note."""
    today = today or date.today()
    recent_days = (today, today - timedelta(days=1))
    return [
        r for r in records
        if r.date in recent_days
        and r.status in (RecordStatus.MISSED, RecordStatus.REJECTED)
        and len(r.note or "") < REFLECTION_MIN_LENGTH
    ]


# ── Pressure Messages ────────────────────────────────────────────────────

class _Message(BaseModel):
    variant: int = 0

    def template(self) -> tuple[str, Callable]:
        pool = MESSAGE_TEMPLATES[self.kind]
        return pool[self.variant % len(pool)]

    @property
    def urgency(self) -> str:
        return self.template()[0]

    @property
    def text(self) -> str:
        return self.template()[1](self)


class AllComplete(_Message):
    kind: Literal["all_complete"] = "all_complete"


class JustMissed(_Message):
    kind: Literal["just_missed"] = "just_missed"


class StreakBroken(_Message):
    kind: Literal["streak_broken"] = "streak_broken"
    last_streak: int


class ClosingSoon(_Message):
    kind: Literal["closing_soon"] = "closing_soon"


class OpenNoSubmit(_Message):
    kind: Literal["open_no_submit"] = "open_no_submit"


class StreakActive(_Message):
    kind: Literal["streak_active"] = "streak_active"
    streak: int


class Milestone(_Message):
    kind: Literal["milestone"] = "milestone"
    streak: int
    phase_label: str
    phase_emoji: str


class RoomLocked(_Message):
    kind: Literal["room_locked"] = "room_locked"
    countdown: str


PressureMessage = Annotated[
    Union[
        AllComplete, JustMissed, StreakBroken, ClosingSoon,
        OpenNoSubmit, StreakActive, Milestone, RoomLocked,
    ],
    Field(discriminator="kind"),
]

_adapter: TypeAdapter = TypeAdapter(PressureMessage)


def parse_pressure_message(data: dict):
    """Rebuild a message from its serialised form, dispatching on ``kind``."""
    return _adapter.validate_python(data)


# (urgency, renderer) per category
MESSAGE_TEMPLATES: dict[str, list[tuple[str, Callable]]] = {
    "open_no_submit": [
        (Urgency.HIGH, lambda m: "The clock is ticking. Your discipline is being measured right now."),
        (Urgency.MEDIUM, lambda m: "Every second you wait, your streak gets more fragile."),
        (Urgency.HIGH, lambda m: "Winners don't wait. Prove it now."),
        (Urgency.CRITICAL, lambda m: "This window won't open again. Act now or face consequences."),
        (Urgency.MEDIUM, lambda m: "Your admin is watching. Don't give them a reason to doubt you."),
        (Urgency.LOW, lambda m: "Discipline isn't about motivation. It's about doing it anyway."),
        (Urgency.MEDIUM, lambda m: "The gap between who you are and who you want to be closes right here."),
    ],
    "closing_soon": [
        (Urgency.CRITICAL, lambda m: "⚠️ FINAL WARNING: This room closes soon. Submit NOW."),
        (Urgency.CRITICAL, lambda m: "You have minutes, not hours. Don't blow this."),
        (Urgency.CRITICAL, lambda m: "Last chance. Miss this and your streak dies."),
        (Urgency.CRITICAL, lambda m: "The window is slamming shut. Move."),
    ],
    "streak_active": [
        (Urgency.MEDIUM, lambda m: f"Don't break the chain. {m.streak} days of proof that you're different."),
        (Urgency.MEDIUM, lambda m: f"{m.streak} days strong. One miss erases the momentum."),
        (Urgency.LOW, lambda m: f"Your {m.streak}-day streak is watching. Don't betray it."),
        (Urgency.LOW, lambda m: f"{m.streak} days of evidence that you can do this. Keep going."),
    ],
    "just_missed": [
        (Urgency.CRITICAL, lambda m: "You missed. That's not a small thing. Your streak is gone."),
        (Urgency.HIGH, lambda m: "Yesterday, you chose comfort over commitment. What will today be?"),
        (Urgency.HIGH, lambda m: "A miss isn't just one day. It's proof that old habits are still stronger."),
        (Urgency.CRITICAL, lambda m: "Your admin was notified. Your record was updated. The evidence is permanent."),
    ],
    "streak_broken": [
        (Urgency.CRITICAL, lambda m: f"You were at {m.last_streak} days. Now you're at 0. Let that sink in."),
        (Urgency.HIGH, lambda m: f"The fall from {m.last_streak} to 0 happened because of one choice."),
        (Urgency.MEDIUM, lambda m: "Recovery starts now. But the record remembers everything."),
    ],
    "milestone": [
        (Urgency.LOW, lambda m: f"🔥 {m.streak} DAYS! You've earned the title: {m.phase_label}."),
        (Urgency.LOW, lambda m: f"New identity unlocked: {m.phase_label} {m.phase_emoji}. The journey shaped you."),
    ],
    "room_locked": [
        (Urgency.LOW, lambda m: f"Room locked. Your window opens in {m.countdown}. Be ready."),
        (Urgency.LOW, lambda m: f"Prepare your proof. The room opens in {m.countdown}."),
        (Urgency.LOW, lambda m: "Locked for now. Discipline means being ready BEFORE it opens."),
    ],
    "all_complete": [
        (Urgency.LOW, lambda m: "All rooms complete. Today, you won. Tomorrow, prove it again."),
        (Urgency.LOW, lambda m: "100% attendance today. That's what discipline looks like."),
        (Urgency.LOW, lambda m: "Today's chapter is written. Make tomorrow's just as strong."),
    ],
}


@dataclass(frozen=True)
class PressureContext:
    is_open: bool = False
    has_submitted: bool = False
    streak: int = 0
    last_streak: int = 0
    urgency: str = Urgency.LOW
    countdown: str = ""
    all_complete: bool = False
    has_missed_recently: bool = False


def _pool(kind: str) -> list[tuple[str, int]]:
    return [(kind, i) for i in range(len(MESSAGE_TEMPLATES[kind]))]


def _build(kind: str, variant: int, ctx: PressureContext):
    if kind == "streak_broken":
        return StreakBroken(variant=variant, last_streak=ctx.last_streak)
    if kind == "streak_active":
        return StreakActive(variant=variant, streak=ctx.streak)
    if kind == "milestone":
        phase = get_streak_phase(ctx.streak)
        return Milestone(
            variant=variant, streak=ctx.streak,
            phase_label=phase.label, phase_emoji=phase.emoji,
        )
    if kind == "room_locked":
        return RoomLocked(variant=variant, countdown=ctx.countdown)
    simple = {
        "all_complete": AllComplete,
        "just_missed": JustMissed,
        "closing_soon": ClosingSoon,
        "open_no_submit": OpenNoSubmit,
    }
    return simple[kind](variant=variant)


def select_pressure_message(ctx: PressureContext, now: Optional[datetime] = None):
    """Pick the message for the situation, stable for the whole minute."""
    now = now or datetime.now()

    if ctx.all_complete:
        pool = _pool("all_complete")
    elif ctx.has_missed_recently and not ctx.has_submitted:
        pool = _pool("streak_broken" if ctx.last_streak > 3 else "just_missed")
    elif ctx.is_open and not ctx.has_submitted:
        closing = ctx.urgency in (Urgency.CRITICAL, Urgency.HIGH)
        pool = _pool("closing_soon" if closing else "open_no_submit")
        if ctx.streak > 2:
            pool += _pool("streak_active")
    elif not ctx.is_open:
        pool = _pool("room_locked")
    elif ctx.streak > 0 and ctx.has_submitted:
        pool = _pool("milestone" if ctx.streak in MILESTONES else "streak_active")
    else:
        pool = _pool("open_no_submit")

    kind, variant = pool[now.minute % len(pool)]
    return _build(kind, variant, ctx)
