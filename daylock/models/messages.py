"""Typed wire models for reminder settings and notifications.

pydantic models give schema validation and JSON serialisation for
everything that crosses the Redis boundary.
"""

from pydantic import BaseModel


class Reminder(BaseModel):
    """A user's request to be nudged before a room opens."""
    reminder_id: str
    room_id: str
    room_name: str
    room_emoji: str = "📋"
    time_start: str          # room open time, "HH:MM"
    minutes_before: int


class ReminderNotification(BaseModel):
    """Published on the reminder channel when a reminder fires."""
    fire_key: str            # "{reminder_id}-{YYYY-MM-DDTHH:MM}"
    room_id: str
    title: str
    body: str
    tag: str                 # room-reminder-{room_id}-{minutes_before}
    fire_at: str             # ISO 8601
