"""
In-memory event list backing the card stack.
Only touched from the UI thread, so no locking.
"""

from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from dateutil import tz as dateutil_tz

from eventswipe.event_models import Event, seed_events
from eventswipe.logging_helper import Log


class EventListStore:
    """
    Ordered list of events for the current session.
    The last event is the visually top card.
    """

    def __init__(self, events: Optional[Iterable[Event]] = None, now: Optional[datetime] = None):
        if events is None:
            if now is None:
                now = datetime.now(dateutil_tz.tzlocal())
            events = seed_events(now)
        self._events: List[Event] = list(events)
        self._listeners: List[Callable[["EventListStore"], None]] = []
        Log.kv({"stage": "store", "action": "init", "count": len(self._events)})

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(tuple(self._events))

    def __contains__(self, event: object) -> bool:
        if not isinstance(event, Event):
            return False
        return any(existing.id == event.id for existing in self._events)

    def top(self) -> Optional[Event]:
        return self._events[-1] if self._events else None

    def subscribe(self, listener: Callable[["EventListStore"], None]) -> None:
        """Register a callable that runs after every change to the list."""
        self._listeners.append(listener)

    def remove_event(self, event: Event) -> bool:
        """
        Remove the first event whose id matches.

        Removing an event that is not in the list is a no-op.

        Returns:
            True if an event was removed, False otherwise
        """
        for index, existing in enumerate(self._events):
            if existing.id == event.id:
                del self._events[index]
                Log.info(f"Removed event: {event.title}")
                Log.kv({"stage": "store", "action": "remove", "id": event.id, "remaining": len(self._events)})
                self._notify()
                return True

        Log.info(f"Event not in list, nothing to remove: {event.id}")
        return False

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                Log.error(f"Store listener failed: {e}")
                Log.kv({"stage": "store", "action": "notify", "result": "listener_failed", "error": str(e)})
