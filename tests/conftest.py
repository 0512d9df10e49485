import os
import tempfile

# Keep test runs from writing log files into the project tree
os.environ.setdefault("EVENTSWIPE_LOG_DIR", tempfile.mkdtemp(prefix="eventswipe-logs-"))
