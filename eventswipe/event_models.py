"""
Event data models for the swipeable event stack.
Defines Event (one card) and CalendarEntry (one calendar write).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

# Every calendar entry created from a card lasts two hours
EVENT_DURATION = timedelta(hours=2)


@dataclass(frozen=True)
class Event:
    """
    A local event shown on one card.
    The id is generated at construction and never changes.
    """
    title: str
    date: datetime
    description: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class CalendarEntry:
    """Platform-neutral calendar event ready to be written."""
    title: str
    start: datetime
    end: datetime
    notes: str

    def duration_minutes(self) -> int:
        """Get entry duration in minutes."""
        delta = self.end - self.start
        return int(delta.total_seconds() / 60)


def calendar_entry_for(event: Event) -> CalendarEntry:
    """Build the two-hour calendar entry for an event."""
    return CalendarEntry(
        title=event.title,
        start=event.date,
        end=event.date + EVENT_DURATION,
        notes=event.description,
    )


# (title, hours from now, description)
SEED_EVENTS = (
    ("Concert in the Park", 24, "Live concert in the city park."),
    ("Museum Exhibition", 48, "Contemporary art."),
    ("Fair on the Square", 72, "City fair with food, music and crafts."),
)


def seed_events(now: datetime) -> List[Event]:
    """Create the initial events, scheduled relative to `now`."""
    return [
        Event(title=title, date=now + timedelta(hours=hours), description=description)
        for title, hours, description in SEED_EVENTS
    ]
