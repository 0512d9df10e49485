"""
AppKit window showing the stack of event cards.
The last event in the store is drawn on top. Must be used on the main thread.
"""

from typing import Callable, Dict, Optional

from eventswipe.calendar_connector import CalendarWriter
from eventswipe.event_card import EventCardController
from eventswipe.event_models import Event
from eventswipe.event_store import EventListStore
from eventswipe.logging_helper import Log

try:
    from AppKit import (
        NSWindow, NSView, NSColor, NSFont, NSTextField, NSButton,
        NSApplication, NSMakeRect, NSMakePoint, NSAnimationContext,
        NSBackingStoreBuffered, NSWindowStyleMaskTitled,
        NSWindowStyleMaskClosable, NSTextAlignmentCenter,
        NSBezelStyleRounded, NSLineBreakByWordWrapping,
    )
    import objc
    APPKIT_AVAILABLE = True
except ImportError:
    APPKIT_AVAILABLE = False


WINDOW_WIDTH = 440
WINDOW_HEIGHT = 500
CARD_WIDTH = 380
CARD_HEIGHT = 400
CARD_MARGIN_X = (WINDOW_WIDTH - CARD_WIDTH) / 2
CARD_MARGIN_Y = 50
SNAP_BACK_SECONDS = 0.2
FLY_OUT_SECONDS = 0.25
EMPTY_TEXT = "No more events"


def _make_label(frame, text: str, font, color=None, wraps: bool = False):
    label = NSTextField.alloc().initWithFrame_(frame)
    label.setStringValue_(text)
    label.setBezeled_(False)
    label.setDrawsBackground_(False)
    label.setEditable_(False)
    label.setSelectable_(False)
    label.setAlignment_(NSTextAlignmentCenter)
    label.setFont_(font)
    label.setTextColor_(color or NSColor.blackColor())
    if wraps:
        label.cell().setWraps_(True)
        label.cell().setLineBreakMode_(NSLineBreakByWordWrapping)
    return label


if APPKIT_AVAILABLE:

    try:
        CardView = objc.lookUpClass("CardView")  # type: ignore[assignment]
    except objc.error:

        class CardView(NSView):
            """One draggable card bound to an EventCardController."""

            def initWithController_(self, controller):  # noqa: N802 - ObjC selector
                frame = NSMakeRect(CARD_MARGIN_X, CARD_MARGIN_Y, CARD_WIDTH, CARD_HEIGHT)
                self = objc.super(CardView, self).initWithFrame_(frame)
                if self is None:
                    return None
                self._controller = controller
                self._home = frame.origin
                self._drag_start = None
                self._build()
                return self

            @objc.python_method
            def _build(self):
                self.setWantsLayer_(True)
                layer = self.layer()
                layer.setCornerRadius_(16.0)
                layer.setBackgroundColor_(NSColor.whiteColor().CGColor())
                layer.setShadowOpacity_(0.25)
                layer.setShadowRadius_(5.0)

                controller = self._controller
                inner_width = CARD_WIDTH - 40
                self.addSubview_(_make_label(
                    NSMakeRect(20, CARD_HEIGHT - 80, inner_width, 44),
                    controller.title, NSFont.boldSystemFontOfSize_(26.0),
                ))
                self.addSubview_(_make_label(
                    NSMakeRect(20, CARD_HEIGHT - 114, inner_width, 22),
                    controller.formatted_date, NSFont.systemFontOfSize_(14.0), NSColor.grayColor(),
                ))
                self.addSubview_(_make_label(
                    NSMakeRect(20, 100, inner_width, CARD_HEIGHT - 230),
                    controller.description, NSFont.systemFontOfSize_(15.0), wraps=True,
                ))

                button = NSButton.alloc().initWithFrame_(NSMakeRect((CARD_WIDTH - 200) / 2, 36, 200, 36))
                button.setTitle_(controller.button_label)
                button.setBezelStyle_(NSBezelStyleRounded)
                button.setTarget_(self)
                button.setAction_("addToCalendar:")
                self.addSubview_(button)

            def acceptsFirstMouse_(self, event):  # noqa: N802 - ObjC selector
                return True

            def addToCalendar_(self, sender):  # noqa: N802 - ObjC selector
                self._controller.add_to_calendar()

            def mouseDown_(self, event):  # noqa: N802 - ObjC selector
                self._drag_start = event.locationInWindow()
                self._controller.drag_began()

            def mouseDragged_(self, event):  # noqa: N802 - ObjC selector
                if self._drag_start is None:
                    return
                location = event.locationInWindow()
                self._controller.drag_moved(
                    location.x - self._drag_start.x,
                    location.y - self._drag_start.y,
                )
                self._apply_offset()

            def mouseUp_(self, event):  # noqa: N802 - ObjC selector
                if self._drag_start is None:
                    return
                self._drag_start = None
                if not self._controller.drag_ended():
                    self._snap_back()

            @objc.python_method
            def _apply_offset(self):
                offset = self._controller.drag.offset
                # The origin is only the unrotated corner at zero rotation
                self.setFrameCenterRotation_(0.0)
                self.setFrameOrigin_(NSMakePoint(self._home.x + offset.x, self._home.y + offset.y))
                # AppKit rotates counterclockwise for positive angles
                self.setFrameCenterRotation_(-self._controller.drag.rotation_degrees)

            @objc.python_method
            def _snap_back(self):
                def _group(context):
                    context.setDuration_(SNAP_BACK_SECONDS)
                    self.animator().setFrameCenterRotation_(0.0)
                    self.animator().setFrameOrigin_(self._home)

                NSAnimationContext.runAnimationGroup_completionHandler_(_group, lambda: None)

else:
    CardView = None  # type: ignore[assignment]


class CardWindow:
    """
    Window that renders one CardView per event and re-renders on store changes.

    Args:
        store: EventListStore backing the stack
        calendar_writer: Writer handed to every card
        on_alert: Called with (title, message) to show a dialog
    """

    def __init__(
        self,
        store: EventListStore,
        calendar_writer: CalendarWriter,
        on_alert: Callable[[str, str], None],
    ):
        if not APPKIT_AVAILABLE:
            raise RuntimeError("AppKit is not available")

        self.store = store
        self._calendar_writer = calendar_writer
        self._on_alert = on_alert
        self._controllers: Dict[object, EventCardController] = {}
        self._views: Dict[object, object] = {}

        self.window = NSWindow.alloc().initWithContentRect_styleMask_backing_defer_(
            NSMakeRect(0, 0, WINDOW_WIDTH, WINDOW_HEIGHT),
            NSWindowStyleMaskTitled | NSWindowStyleMaskClosable,
            NSBackingStoreBuffered,
            False,
        )
        self.window.setTitle_("Events")
        self.window.setReleasedWhenClosed_(False)
        self.window.center()

        content_view = NSView.alloc().initWithFrame_(NSMakeRect(0, 0, WINDOW_WIDTH, WINDOW_HEIGHT))
        self.window.setContentView_(content_view)

        self._empty_label = _make_label(
            NSMakeRect(0, WINDOW_HEIGHT / 2 - 15, WINDOW_WIDTH, 30),
            EMPTY_TEXT, NSFont.systemFontOfSize_(18.0), NSColor.grayColor(),
        )
        content_view.addSubview_(self._empty_label)

        store.subscribe(self._on_store_changed)
        self.render()

    def set_calendar_writer(self, calendar_writer: CalendarWriter) -> None:
        self._calendar_writer = calendar_writer
        for controller in self._controllers.values():
            controller.calendar_writer = calendar_writer

    def show(self) -> None:
        self.render()
        NSApplication.sharedApplication().activateIgnoringOtherApps_(True)
        self.window.makeKeyAndOrderFront_(None)

    def render(self) -> None:
        """Sync card views with the store; later events sit above earlier ones."""
        live_ids = {event.id for event in self.store}
        for event_id in list(self._views):
            if event_id not in live_ids:
                self._views.pop(event_id).removeFromSuperview()
                self._controllers.pop(event_id, None)

        content_view = self.window.contentView()
        for event in self.store:
            view = self._views.get(event.id)
            if view is None:
                view = self._create_card(event)
            # Re-adding moves the view to the top of the z-order
            view.removeFromSuperview()
            content_view.addSubview_(view)

        self._empty_label.setHidden_(len(self.store) > 0)

    def _create_card(self, event: Event):
        controller = EventCardController(
            event,
            on_remove=self._dismiss,
            calendar_writer=self._calendar_writer,
            on_alert=self._on_alert,
        )
        view = CardView.alloc().initWithController_(controller)
        self._controllers[event.id] = controller
        self._views[event.id] = view
        return view

    def _dismiss(self, event: Event) -> None:
        view: Optional[object] = self._views.get(event.id)
        if view is None:
            self.store.remove_event(event)
            return

        offset = self._controllers[event.id].drag.offset
        direction = 1 if offset.x >= 0 else -1

        def _group(context):
            context.setDuration_(FLY_OUT_SECONDS)
            origin = view.frame().origin
            view.animator().setFrameOrigin_(NSMakePoint(origin.x + direction * WINDOW_WIDTH, origin.y))
            view.animator().setAlphaValue_(0.0)

        def _completion():
            self.store.remove_event(event)

        NSAnimationContext.runAnimationGroup_completionHandler_(_group, _completion)

    def _on_store_changed(self, store: EventListStore) -> None:
        Log.info(f"Re-rendering card stack ({len(store)} events)")
        self.render()
