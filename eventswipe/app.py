"""
Main app entry point for the EventSwipe menu bar app.
"""

from eventswipe.logging_helper import Log
from eventswipe.statusbar_controller import StatusBarController


def main():
    """Main entry point for the app."""
    Log.section("EventSwipe")
    Log.info("Starting EventSwipe menu bar app")
    Log.info(f"Log file: {Log.get_log_path()}")

    app = StatusBarController()
    app.run()


if __name__ == "__main__":
    main()
