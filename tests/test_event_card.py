import datetime as dt
import unittest
from unittest import mock

from eventswipe.calendar_connector import CalendarWriteResult, CalendarWriteStatus, EventKitCalendarWriter
from eventswipe.event_card import ADDED_TITLE, FAILED_TITLE, EventCardController, format_event_date
from eventswipe.event_models import Event
from eventswipe.event_store import EventListStore

from fakes import FakeEventStore, RecordingWriter

NOW = dt.datetime(2026, 10, 18, 12, 0, tzinfo=dt.timezone.utc)


def _run_now(callback):
    callback()


class TestEventCardController(unittest.TestCase):
    def setUp(self) -> None:
        self.store = EventListStore(now=NOW)
        self.alerts = []
        self.writer = RecordingWriter()

    def _controller(self, event, writer=None, dispatch=_run_now):
        return EventCardController(
            event,
            on_remove=self.store.remove_event,
            calendar_writer=writer or self.writer,
            on_alert=lambda title, message: self.alerts.append((title, message)),
            dispatch=dispatch,
        )

    def test_card_text(self) -> None:
        event = Event("Jazz Night", dt.datetime(2026, 10, 19, 15, 4, tzinfo=dt.timezone.utc), "Live jazz.")
        card = self._controller(event)
        self.assertEqual(card.title, "Jazz Night")
        self.assertEqual(card.formatted_date, "October 19, 2026 at 3:04 PM")
        self.assertEqual(card.description, "Live jazz.")
        self.assertEqual(card.button_label, "Add to Calendar")

    def test_date_format_midnight_and_noon(self) -> None:
        self.assertEqual(format_event_date(dt.datetime(2026, 1, 2, 0, 5)), "January 2, 2026 at 12:05 AM")
        self.assertEqual(format_event_date(dt.datetime(2026, 1, 2, 12, 0)), "January 2, 2026 at 12:00 PM")

    def test_dismissing_middle_card_keeps_order(self) -> None:
        a, b, c = self.store.events
        card = self._controller(b)
        card.drag_began()
        card.drag_moved(200, 0)
        self.assertTrue(card.drag_ended())
        self.assertEqual(self.store.events, (a, c))

    def test_release_at_threshold_keeps_card(self) -> None:
        top = self.store.top()
        card = self._controller(top)
        card.drag_began()
        card.drag_moved(-150, 0)
        self.assertFalse(card.drag_ended())
        self.assertEqual(len(self.store), 3)
        self.assertEqual((card.drag.offset.x, card.drag.offset.y), (0, 0))

    def test_remove_callback_fires_once(self) -> None:
        removed = []
        card = EventCardController(
            self.store.top(),
            on_remove=removed.append,
            calendar_writer=self.writer,
            on_alert=lambda *_: None,
            dispatch=_run_now,
        )
        card.drag_moved(400, 0)
        card.drag_ended()
        card.drag_ended()
        self.assertEqual(removed, [self.store.top()])

    def test_successful_add_shows_confirmation_and_keeps_card(self) -> None:
        event = self.store.events[0]
        card = self._controller(event)
        self.assertTrue(card.add_to_calendar())
        self.assertEqual(self.alerts, [(ADDED_TITLE, event.title)])
        self.assertEqual(len(self.store), 3)
        self.assertEqual(self.writer.entries[0].end - self.writer.entries[0].start, dt.timedelta(hours=2))
        self.assertTrue(card.last_result.ok)
        self.assertFalse(card.pending)

    def test_confirmation_waits_for_the_writer(self) -> None:
        writer = RecordingWriter(status=None)
        card = self._controller(self.store.events[0], writer=writer)
        card.add_to_calendar()
        self.assertTrue(card.pending)
        self.assertEqual(self.alerts, [])
        self.assertFalse(card.add_to_calendar())
        self.assertEqual(len(writer.entries), 1)

        writer.completions[0](CalendarWriteResult(CalendarWriteStatus.ADDED, writer.entries[0]))
        self.assertFalse(card.pending)
        self.assertEqual([title for title, _ in self.alerts], [ADDED_TITLE])

    def test_result_is_dispatched_to_ui_thread(self) -> None:
        queued = []
        card = self._controller(self.store.events[0], dispatch=queued.append)
        card.add_to_calendar()
        self.assertEqual(self.alerts, [])
        self.assertEqual(len(queued), 1)
        queued[0]()
        self.assertEqual([title for title, _ in self.alerts], [ADDED_TITLE])

    def test_denied_authorization_shows_failure_and_creates_nothing(self) -> None:
        fake_store = FakeEventStore(granted=False)
        writer = EventKitCalendarWriter(event_store=fake_store)
        card = self._controller(self.store.events[0], writer=writer)
        card.add_to_calendar()
        self.assertEqual(fake_store.saved, [])
        self.assertEqual(len(self.alerts), 1)
        self.assertEqual(self.alerts[0][0], FAILED_TITLE)
        self.assertNotIn(ADDED_TITLE, [title for title, _ in self.alerts])
        self.assertIs(card.last_result.status, CalendarWriteStatus.ACCESS_DENIED)

    def test_save_failure_message_includes_detail(self) -> None:
        writer = RecordingWriter(status=CalendarWriteStatus.SAVE_FAILED, detail="Calendar is read-only")
        card = self._controller(self.store.events[0], writer=writer)
        card.add_to_calendar()
        title, message = self.alerts[0]
        self.assertEqual(title, FAILED_TITLE)
        self.assertIn("Calendar is read-only", message)

    def test_failing_confirmation_dialog_does_not_report_failure(self) -> None:
        shown = []

        def on_alert(title, message):
            shown.append(title)
            if title == ADDED_TITLE:
                raise RuntimeError("alert could not be shown")

        card = EventCardController(
            self.store.events[0],
            on_remove=self.store.remove_event,
            calendar_writer=RecordingWriter(),
            on_alert=on_alert,
            dispatch=_run_now,
        )
        card.add_to_calendar()
        self.assertEqual(shown, [ADDED_TITLE])
        self.assertIs(card.last_result.status, CalendarWriteStatus.ADDED)
        self.assertFalse(card.pending)

    def test_extra_writer_replies_are_ignored(self) -> None:
        writer = RecordingWriter(status=None)
        card = self._controller(self.store.events[0], writer=writer)
        card.add_to_calendar()
        reply = writer.completions[0]
        reply(CalendarWriteResult(CalendarWriteStatus.ADDED, writer.entries[0]))
        reply(CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, writer.entries[0], "late"))
        self.assertEqual([title for title, _ in self.alerts], [ADDED_TITLE])
        self.assertTrue(card.last_result.ok)

    def test_writer_exception_becomes_failure(self) -> None:
        writer = RecordingWriter()
        with mock.patch.object(writer, "write", side_effect=RuntimeError("boom")):
            card = self._controller(self.store.events[0], writer=writer)
            card.add_to_calendar()
        self.assertEqual(self.alerts[0][0], FAILED_TITLE)
        self.assertIs(card.last_result.status, CalendarWriteStatus.SAVE_FAILED)
        self.assertFalse(card.pending)


if __name__ == "__main__":
    unittest.main(verbosity=2)
