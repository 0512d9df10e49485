"""
Card controller: everything a card view needs besides drawing.
Owns the drag state for one event and the add-to-calendar flow.
"""

from datetime import datetime
from typing import Callable, Optional

from eventswipe.calendar_connector import CalendarWriter, CalendarWriteResult, CalendarWriteStatus
from eventswipe.card_drag import CardDrag
from eventswipe.event_models import Event, calendar_entry_for
from eventswipe.logging_helper import Log
from eventswipe.main_thread import dispatch_to_main

ADD_BUTTON_LABEL = "Add to Calendar"
ADDED_TITLE = "Event added!"
FAILED_TITLE = "Could not add event"

_FAILURE_MESSAGES = {
    CalendarWriteStatus.ACCESS_DENIED: "Calendar access was not granted.",
    CalendarWriteStatus.SAVE_FAILED: "The calendar could not save the event.",
    CalendarWriteStatus.UNAVAILABLE: "No calendar is available on this system.",
}


def format_event_date(date: datetime) -> str:
    """Long date with short time, e.g. 'October 19, 2026 at 3:04 PM'."""
    hour = date.hour % 12 or 12
    meridiem = "AM" if date.hour < 12 else "PM"
    return f"{date:%B} {date.day}, {date.year} at {hour}:{date:%M} {meridiem}"


class EventCardController:
    """
    Drives one card.

    Args:
        event: Event shown on the card
        on_remove: Called with the event when a drag dismisses the card
        calendar_writer: Backend that performs the calendar write
        on_alert: Called with (title, message) to show a dialog
        dispatch: Runs a callable on the UI thread
    """

    def __init__(
        self,
        event: Event,
        on_remove: Callable[[Event], None],
        calendar_writer: CalendarWriter,
        on_alert: Callable[[str, str], None],
        dispatch: Callable[[Callable[[], None]], None] = dispatch_to_main,
    ):
        self.event = event
        self.drag = CardDrag()
        self.pending = False
        self.last_result: Optional[CalendarWriteResult] = None
        self._on_remove = on_remove
        self.calendar_writer = calendar_writer
        self._on_alert = on_alert
        self._dispatch = dispatch

    @property
    def title(self) -> str:
        return self.event.title

    @property
    def formatted_date(self) -> str:
        return format_event_date(self.event.date)

    @property
    def description(self) -> str:
        return self.event.description

    @property
    def button_label(self) -> str:
        return ADD_BUTTON_LABEL

    def drag_began(self) -> None:
        self.drag.begin()

    def drag_moved(self, dx: float, dy: float) -> None:
        self.drag.move(dx, dy)

    def drag_ended(self) -> bool:
        """
        Finish a drag; removes the card when it passed the threshold.

        Returns:
            True if the card was dismissed
        """
        offset = self.drag.offset
        dismissed = self.drag.end()
        Log.kv({
            "stage": "card",
            "action": "drag_end",
            "event_title": self.event.title,
            "offset_x": f"{offset.x:.1f}",
            "dismissed": dismissed,
        })
        if dismissed:
            self._on_remove(self.event)
        return dismissed

    def add_to_calendar(self) -> bool:
        """
        Ask the calendar writer to add this event.
        The dialog is shown once the writer reports back.

        Returns:
            False if a request for this card is already in flight
        """
        if self.pending:
            Log.info(f"Calendar request already pending for: {self.event.title}")
            return False

        self.pending = True
        entry = calendar_entry_for(self.event)
        Log.info(f"Adding to calendar: {entry.title} ({entry.start.isoformat()} - {entry.end.isoformat()})")

        # One outcome per request, even if the writer misbehaves
        reported = []

        def completion(result: CalendarWriteResult):
            if reported:
                Log.warn(f"Ignoring extra calendar result ({result.status.value}) for: {entry.title}")
                return
            reported.append(result)
            self._dispatch(lambda: self._handle_result(result))

        try:
            self.calendar_writer.write(entry, completion)
        except Exception as e:
            if reported:
                # The writer already replied; the error came from showing the outcome
                Log.error(f"Failed while reporting calendar result: {e}")
                return True
            Log.error(f"Calendar writer raised: {e}")
            completion(CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, entry, str(e)))
        return True

    def _handle_result(self, result: CalendarWriteResult) -> None:
        self.pending = False
        self.last_result = result

        if result.ok:
            Log.info(f"Calendar write succeeded: {result.entry.title}")
            self._on_alert(ADDED_TITLE, result.entry.title)
            return

        Log.warn(f"Calendar write failed ({result.status.value}): {result.detail}")
        message = _FAILURE_MESSAGES.get(result.status, "The event was not added.")
        if result.detail:
            message = f"{message}\n{result.detail}"
        self._on_alert(FAILED_TITLE, message)
