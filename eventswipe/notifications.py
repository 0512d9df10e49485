"""
Notification helper for showing dialogs and banners to the user.
Uses rumps for both the modal alert and the Notification Center banner.
"""

import rumps  # type: ignore

from eventswipe.logging_helper import Log

APP_NAME = "EventSwipe"


def show_alert(title: str, message: str) -> int:
    """
    Show a modal alert with a single OK button.
    Must be called on the main thread.

    Returns:
        The rumps response code (1 for OK)
    """
    Log.info(f"Showing alert: {title}")
    Log.kv({"stage": "notification", "kind": "alert", "title": title})
    return rumps.alert(title=title, message=message, ok="OK")


def show_banner(title: str, message: str) -> bool:
    """
    Post a Notification Center banner.

    Returns:
        True if the banner was handed to the system, False otherwise
    """
    try:
        rumps.notification(APP_NAME, title, message)
    except Exception as e:
        Log.warn(f"Failed to post notification: {e}")
        Log.kv({"stage": "notification", "kind": "banner", "result": "failed", "error": str(e)})
        return False
    Log.kv({"stage": "notification", "kind": "banner", "result": "posted", "title": title})
    return True
