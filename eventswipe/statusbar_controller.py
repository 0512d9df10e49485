"""
Status bar controller for menu bar app interface.
Handles the menu, the calendar backend choice and the card window.
"""

from typing import Optional

import rumps  # type: ignore  # rumps is provided by the 'rumps' package, ensure it is installed

from eventswipe.calendar_connector import get_calendar_writer
from eventswipe.card_window import CardWindow
from eventswipe.event_store import EventListStore
from eventswipe.logging_helper import Log
from eventswipe.notifications import show_alert, show_banner
from eventswipe.settings_manager import get_calendar_backend, get_ics_export_dir, set_calendar_backend

BACKEND_TITLES = {
    "apple": "Apple Calendar",
    "ics": "ICS File",
    "google": "Google Calendar",
}


def _menu_title(count: int) -> str:
    if count == 1:
        return "1 event"
    return f"{count} events"


class StatusBarController(rumps.App):
    """
    Menu bar app controller using rumps.
    Provides menu items for the card window, calendar backend and quit.
    """

    def __init__(self, store: Optional[EventListStore] = None):
        """Initialize the status bar app."""
        self.store = store if store is not None else EventListStore()
        super(StatusBarController, self).__init__(
            "EventSwipe",
            title=_menu_title(len(self.store)),
            icon=None,
            template=True,
            quit_button=None  # We'll add quit manually
        )

        self.backend = get_calendar_backend()
        self.calendar_writer = get_calendar_writer(self.backend, get_ics_export_dir())
        self._window: Optional[CardWindow] = None

        self._backend_items = {
            backend: rumps.MenuItem(title, callback=self.backend_menu_item)
            for backend, title in BACKEND_TITLES.items()
        }
        self._refresh_backend_marks()

        # Set up menu items: "Show Events", calendar submenu, separator, "Quit"
        self.menu = [
            rumps.MenuItem("Show Events", callback=self.show_events_menu_item),
            ("Calendar", list(self._backend_items.values())),
            None,  # Separator
            rumps.MenuItem("Quit", callback=self.quit_menu_item)
        ]

        self.store.subscribe(self._on_store_changed)

        Log.section("StatusBar Controller")
        Log.info("Initializing menu bar app")
        Log.kv({"stage": "statusbar", "backend": self.backend, "events": len(self.store)})

    def show_events_menu_item(self, _):
        """Handle Show Events click."""
        Log.section("Show Events Menu Item Clicked")
        if self._window is None:
            self._window = CardWindow(self.store, self.calendar_writer, on_alert=show_alert)
        self._window.show()

    def backend_menu_item(self, sender):
        """Switch the calendar backend used by every card."""
        backend = next(key for key, item in self._backend_items.items() if item is sender)
        if backend == self.backend:
            return

        Log.info(f"Switching calendar backend: {self.backend} -> {backend}")
        set_calendar_backend(backend)
        self.backend = backend
        self.calendar_writer = get_calendar_writer(backend, get_ics_export_dir())
        if self._window is not None:
            self._window.set_calendar_writer(self.calendar_writer)
        self._refresh_backend_marks()

    def quit_menu_item(self, _):
        """Handle quit button click."""
        Log.section("Quit Menu Item Clicked")
        Log.info("User clicked Quit - exiting app")
        rumps.quit_application()

    def _refresh_backend_marks(self):
        for backend, item in self._backend_items.items():
            item.state = 1 if backend == self.backend else 0

    def _on_store_changed(self, store: EventListStore):
        self.title = _menu_title(len(store))
        if len(store) == 0:
            show_banner("All caught up", "You have gone through every event.")
