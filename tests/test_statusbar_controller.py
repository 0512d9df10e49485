import datetime as dt
import importlib
import os
import sys
import tempfile
import types
import unittest
from unittest import mock

from eventswipe.calendar_connector import EventKitCalendarWriter, IcsFileWriter
from eventswipe.event_store import EventListStore
from eventswipe.settings_manager import get_calendar_backend

NOW = dt.datetime(2026, 10, 18, 12, 0, tzinfo=dt.timezone.utc)


def _fake_rumps():
    rumps = types.ModuleType("rumps")

    class App:
        def __init__(self, name, title=None, icon=None, template=None, menu=None, quit_button="Quit"):
            self.name = name
            self.title = title

    class MenuItem:
        def __init__(self, title, callback=None):
            self.title = title
            self.callback = callback
            self.state = 0

    rumps.App = App
    rumps.MenuItem = MenuItem
    rumps.alert = mock.Mock(return_value=1)
    rumps.notification = mock.Mock()
    rumps.quit_application = mock.Mock()
    return rumps


class TestStatusBarController(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        env = mock.patch.dict(os.environ, {"EVENTSWIPE_SETTINGS_DIR": self._tmp.name})
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("EVENTSWIPE_CALENDAR_BACKEND", None)

        self.rumps = _fake_rumps()
        modules = mock.patch.dict(sys.modules, {"rumps": self.rumps})
        modules.start()
        self.addCleanup(modules.stop)
        sys.modules.pop("eventswipe.notifications", None)
        sys.modules.pop("eventswipe.statusbar_controller", None)
        self.notifications = importlib.import_module("eventswipe.notifications")
        self.statusbar = importlib.import_module("eventswipe.statusbar_controller")

    def test_menu_title_is_pluralised(self) -> None:
        self.assertEqual(self.statusbar._menu_title(0), "0 events")
        self.assertEqual(self.statusbar._menu_title(1), "1 event")
        self.assertEqual(self.statusbar._menu_title(3), "3 events")

    def test_title_follows_store_and_banner_on_empty_stack(self) -> None:
        store = EventListStore(now=NOW)
        app = self.statusbar.StatusBarController(store=store)
        self.assertEqual(app.title, "3 events")

        first, second, third = store.events
        store.remove_event(first)
        store.remove_event(second)
        self.assertEqual(app.title, "1 event")
        self.rumps.notification.assert_not_called()

        store.remove_event(third)
        self.assertEqual(app.title, "0 events")
        self.rumps.notification.assert_called_once()

    def test_backend_switch_swaps_writer_and_marks(self) -> None:
        app = self.statusbar.StatusBarController(store=EventListStore(now=NOW))
        self.assertEqual(app.backend, "apple")
        self.assertIsInstance(app.calendar_writer, EventKitCalendarWriter)
        self.assertEqual(app._backend_items["apple"].state, 1)

        app.backend_menu_item(app._backend_items["ics"])
        self.assertEqual(app.backend, "ics")
        self.assertIsInstance(app.calendar_writer, IcsFileWriter)
        self.assertEqual(app._backend_items["ics"].state, 1)
        self.assertEqual(app._backend_items["apple"].state, 0)

        self.assertEqual(get_calendar_backend(), "ics")

    def test_show_alert_uses_single_ok_button(self) -> None:
        self.assertEqual(self.notifications.show_alert("Event added!", "Concert"), 1)
        self.rumps.alert.assert_called_once_with(title="Event added!", message="Concert", ok="OK")

    def test_show_banner_reports_failure(self) -> None:
        self.assertTrue(self.notifications.show_banner("Title", "Body"))
        self.rumps.notification.side_effect = RuntimeError("no notification center")
        self.assertFalse(self.notifications.show_banner("Title", "Body"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
