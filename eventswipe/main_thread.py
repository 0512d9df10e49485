"""
Helpers for running Python callables on the AppKit main thread.
Calendar replies arrive on an arbitrary queue; UI updates must not.
"""

import threading

from eventswipe.logging_helper import Log

try:
    from Foundation import NSObject, NSRunLoop  # type: ignore
    import objc  # type: ignore
    APPKIT_AVAILABLE = True
except ImportError:
    APPKIT_AVAILABLE = False


if APPKIT_AVAILABLE:

    class _MainThreadDispatchHelper(NSObject):
        """Utility object to dispatch Python callables onto the main thread."""

        def initWithCallable_(self, callback):
            self = objc.super(_MainThreadDispatchHelper, self).init()
            if self is None:
                return None
            self._callback = callback
            return self

        def run_(self, _):  # noqa: N802 - ObjC selector style
            if self._callback is None:
                return
            try:
                self._callback()
            finally:
                self._callback = None


def dispatch_to_main(callback):
    """Ensure the provided callable runs on the main thread."""
    if not APPKIT_AVAILABLE or threading.current_thread() is threading.main_thread():
        callback()
        return

    Log.info("[DISPATCH] Dispatching to main thread")
    main_runloop = NSRunLoop.mainRunLoop()
    if hasattr(main_runloop, 'performBlock_'):
        main_runloop.performBlock_(callback)
        return

    helper = _MainThreadDispatchHelper.alloc().initWithCallable_(callback)
    helper.performSelectorOnMainThread_withObject_waitUntilDone_('run:', None, False)
