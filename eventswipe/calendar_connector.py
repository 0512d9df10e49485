"""
Calendar writers for adding a card's event to the user's calendar.
Supports Apple Calendar (via EventKit), ICS file export and Google Calendar
(via browser URLs).

Every writer reports its outcome through a completion callback, called
exactly once with a CalendarWriteResult. The callback may run on any thread.
"""

import hashlib
import re
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote

import tzlocal
from dateutil import tz as dateutil_tz

from eventswipe.event_models import CalendarEntry
from eventswipe.logging_helper import Log

# Try to import EventKit
try:
    from EventKit import EKEventStore, EKEvent  # type: ignore
    from Foundation import NSDate  # type: ignore
    EVENTKIT_AVAILABLE = True
except ImportError:
    EVENTKIT_AVAILABLE = False

_EK_ENTITY_TYPE_EVENT = 0  # EKEntityTypeEvent
_EK_SPAN_THIS_EVENT = 0  # EKSpanThisEvent

ICS_LINE_LIMIT = 75


class CalendarWriteStatus(Enum):
    ADDED = "added"
    ACCESS_DENIED = "access_denied"
    SAVE_FAILED = "save_failed"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CalendarWriteResult:
    status: CalendarWriteStatus
    entry: CalendarEntry
    detail: str = ""
    location: Optional[str] = None  # ICS path or calendar URL when applicable

    @property
    def ok(self) -> bool:
        return self.status is CalendarWriteStatus.ADDED


WriteCompletion = Callable[[CalendarWriteResult], None]


class CalendarWriter(ABC):
    """Abstract base class for calendar backends."""

    name = "abstract"

    @abstractmethod
    def write(self, entry: CalendarEntry, completion: WriteCompletion) -> None:
        """
        Write one entry and report the outcome.

        Args:
            entry: CalendarEntry to create
            completion: Called exactly once with the CalendarWriteResult
        """
        pass

    def _finish(self, completion: WriteCompletion, result: CalendarWriteResult) -> None:
        kv = {
            "stage": "calendar",
            "backend": self.name,
            "result": result.status.value,
            "event_title": result.entry.title,
        }
        if result.detail:
            kv["detail"] = result.detail
        if result.location:
            kv["location"] = result.location
        Log.kv(kv)
        completion(result)


def _ensure_aware(dt: datetime) -> datetime:
    # If no timezone, assume it's local time (system timezone)
    if dt.tzinfo is None:
        system_tz = dateutil_tz.tzlocal()
        Log.warn(f"Datetime missing timezone info, assuming system timezone: {system_tz}")
        return dt.replace(tzinfo=system_tz)
    return dt


def _tzinfo_to_iana(tzinfo) -> Optional[str]:
    """
    Attempt to extract an IANA timezone identifier from a tzinfo object.
    """
    if tzinfo is None:
        return None

    # Common attributes exposed by zoneinfo.ZoneInfo or pytz timezones
    for attr in ("key", "zone"):
        value = getattr(tzinfo, attr, None)
        if isinstance(value, str) and value:
            if "/" in value or value.upper() == "UTC":
                return value

    try:
        value = tzinfo.tzname(None)
    except Exception:
        return None
    if isinstance(value, str) and value and ("/" in value or value.upper() == "UTC"):
        return value
    return None


def _resolve_iana_timezone(entry: CalendarEntry) -> Optional[str]:
    """
    Resolve an IANA timezone identifier for Google Calendar URLs.

    Prefers the entry's own timezone, falls back to the system timezone.
    """
    for dt in (entry.start, entry.end):
        iana = _tzinfo_to_iana(dt.tzinfo)
        if iana:
            return iana

    try:
        iana = tzlocal.get_localzone_name()
        if isinstance(iana, str) and iana:
            return iana
    except Exception as tz_err:
        Log.warn(f"Failed to determine system IANA timezone: {tz_err}")

    return None


def _format_utc(dt: datetime) -> str:
    """
    Format datetime as UTC (YYYYMMDDTHHMMSSZ).
    Used by both ICS files and Google Calendar URLs.
    """
    dt_utc = _ensure_aware(dt).astimezone(dateutil_tz.tzutc())
    return dt_utc.strftime('%Y%m%dT%H%M%SZ')


def _escape_ical_text(text: Optional[str]) -> str:
    """
    Escape text for iCalendar format (RFC5545).
    Escapes commas, semicolons, backslashes, and newlines.
    """
    if text is None:
        return ""

    # Replace backslashes first (before other replacements)
    text = text.replace('\\', '\\\\')
    text = text.replace(';', '\\;')
    text = text.replace(',', '\\,')
    text = text.replace('\r\n', '\n').replace('\r', '')
    return text.replace('\n', '\\n')


def _fold_ical_line(line: str) -> str:
    """
    Fold a content line to 75 octets; continuation lines start with a space.
    """
    pieces = []
    current = ""
    for char in line:
        if len((current + char).encode('utf-8')) > ICS_LINE_LIMIT:
            pieces.append(current)
            current = " " + char
        else:
            current += char
    pieces.append(current)
    return '\r\n'.join(pieces)


def build_ics(entry: CalendarEntry, uid: str, stamp: Optional[datetime] = None) -> str:
    """Render a single-event VCALENDAR document."""
    if stamp is None:
        stamp = datetime.now(dateutil_tz.tzutc())

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//EventSwipe//EventSwipe//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{_format_utc(stamp)}",
        f"DTSTART:{_format_utc(entry.start)}",
        f"DTEND:{_format_utc(entry.end)}",
        f"SUMMARY:{_escape_ical_text(entry.title)}",
    ]
    if entry.notes:
        lines.append(f"DESCRIPTION:{_escape_ical_text(entry.notes)}")
    lines.extend(["END:VEVENT", "END:VCALENDAR"])

    return '\r\n'.join(_fold_ical_line(line) for line in lines) + '\r\n'


def build_google_calendar_url(entry: CalendarEntry) -> str:
    """
    Generate a Google Calendar URL with pre-filled event details.
    """
    start_str = _format_utc(entry.start)
    end_str = _format_utc(entry.end)

    # Format: https://calendar.google.com/calendar/r/eventedit?action=TEMPLATE&dates=START%2FEND&text=TITLE&details=DESC
    url = (
        "https://calendar.google.com/calendar/r/eventedit?action=TEMPLATE"
        f"&dates={start_str}%2F{end_str}&text={quote(entry.title, safe='')}"
    )
    if entry.notes:
        url += f"&details={quote(entry.notes, safe='')}"

    iana_timezone = _resolve_iana_timezone(entry)
    if iana_timezone:
        url += f"&ctz={quote(iana_timezone, safe='')}"
    else:
        Log.warn("Unable to determine IANA timezone for Google Calendar URL; defaulting to Google account settings")

    return url


def _open_async(args, thread_name: str, on_done: Callable[[Optional[str]], None]):
    """
    Run `open` on a daemon thread so the UI never waits on it.

    Args:
        args: Command line for `open`
        thread_name: Name of the opener thread
        on_done: Called with None once `open` succeeds, or with the error text
    """

    def _run():
        try:
            subprocess.run(args, check=True)
        except subprocess.CalledProcessError as e:
            Log.warn(f"Failed to open {args[-1][:100]}: {e}")
            on_done(str(e))
            return
        except Exception as e:
            Log.warn(f"Error opening {args[-1][:100]}: {e}")
            on_done(str(e))
            return
        Log.info(f"Opened: {args[-1][:100]}")
        on_done(None)

    thread = threading.Thread(target=_run, daemon=True, name=thread_name)
    thread.start()
    return thread


class EventKitCalendarWriter(CalendarWriter):
    """
    Writes entries to the default calendar through EventKit.

    One EKEventStore is kept per writer; authorization is requested on every
    write and the platform replies on an arbitrary queue.
    """

    name = "apple"

    def __init__(self, event_store=None):
        self._event_store = event_store

    @property
    def event_store(self):
        if self._event_store is None and EVENTKIT_AVAILABLE:
            self._event_store = EKEventStore.alloc().init()
        return self._event_store

    def write(self, entry: CalendarEntry, completion: WriteCompletion) -> None:
        Log.section("Calendar Connector")
        Log.info(f"Creating Apple Calendar event for: {entry.title}")

        store = self.event_store
        if store is None:
            Log.warn("EventKit not available - cannot write to calendar")
            self._finish(completion, CalendarWriteResult(
                CalendarWriteStatus.UNAVAILABLE, entry, "EventKit is not available"
            ))
            return

        def access_callback(granted, error):
            if not granted or error is not None:
                detail = _describe_error(error) if error is not None else "Calendar access was not granted"
                Log.warn(f"Calendar access denied: {detail}")
                self._finish(completion, CalendarWriteResult(
                    CalendarWriteStatus.ACCESS_DENIED, entry, detail
                ))
                return
            self._finish(completion, self._save(store, entry))

        try:
            if store.respondsToSelector_("requestFullAccessToEventsWithCompletion:"):
                store.requestFullAccessToEventsWithCompletion_(access_callback)
            else:
                store.requestAccessToEntityType_completion_(_EK_ENTITY_TYPE_EVENT, access_callback)
        except Exception as e:
            Log.error(f"Calendar access request failed: {e}")
            self._finish(completion, CalendarWriteResult(
                CalendarWriteStatus.ACCESS_DENIED, entry, str(e)
            ))

    def _save(self, store, entry: CalendarEntry) -> CalendarWriteResult:
        try:
            calendar = store.defaultCalendarForNewEvents()
            if calendar is None:
                return CalendarWriteResult(
                    CalendarWriteStatus.SAVE_FAILED, entry, "No default calendar for new events"
                )
            ek_event = self._build_ek_event(store, entry, calendar)
            saved, error = store.saveEvent_span_error_(ek_event, _EK_SPAN_THIS_EVENT, None)
        except Exception as e:
            Log.error(f"EventKit save raised: {e}")
            return CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, entry, str(e))

        if not saved:
            detail = _describe_error(error) if error is not None else "Calendar save failed"
            Log.error(f"Calendar save failed: {detail}")
            return CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, entry, detail)

        Log.info("Event added to calendar")
        return CalendarWriteResult(CalendarWriteStatus.ADDED, entry)

    def _build_ek_event(self, store, entry: CalendarEntry, calendar):
        start = _ensure_aware(entry.start)
        end = _ensure_aware(entry.end)

        ek_event = EKEvent.eventWithEventStore_(store)
        ek_event.setTitle_(entry.title)
        ek_event.setStartDate_(NSDate.dateWithTimeIntervalSince1970_(start.timestamp()))
        ek_event.setEndDate_(NSDate.dateWithTimeIntervalSince1970_(end.timestamp()))
        ek_event.setNotes_(entry.notes)
        ek_event.setCalendar_(calendar)
        return ek_event


class IcsFileWriter(CalendarWriter):
    """Exports the entry as an .ics file and optionally opens it in Calendar."""

    name = "ics"

    def __init__(self, export_dir: Optional[Path] = None, open_in_calendar: bool = True):
        self.export_dir = Path(export_dir) if export_dir is not None else Path.home() / "Downloads"
        self.open_in_calendar = open_in_calendar

    def write(self, entry: CalendarEntry, completion: WriteCompletion) -> None:
        Log.section("Calendar Connector")
        Log.info(f"Generating ICS file for: {entry.title}")

        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            safe_title = re.sub(r'[^\w\s-]', '', entry.title)[:50]
            safe_title = re.sub(r'[-\s]+', '_', safe_title).strip('_') or "event"
            ics_path = self.export_dir / f"EventSwipe_{safe_title}_{timestamp}.ics"

            uid_string = f"{entry.start.isoformat()}_{entry.title}"
            uid = hashlib.md5(uid_string.encode()).hexdigest() + "@eventswipe.local"

            ics_path.write_text(build_ics(entry, uid), encoding='utf-8', newline='')
        except Exception as e:
            Log.error(f"ICS generation failed: {e}")
            self._finish(completion, CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, entry, str(e)))
            return

        Log.info(f"ICS file generated: {ics_path}")
        if not self.open_in_calendar:
            self._finish(completion, CalendarWriteResult(
                CalendarWriteStatus.ADDED, entry, location=str(ics_path)
            ))
            return

        # Only the Calendar import counts as added; the file alone is not
        def on_opened(error: Optional[str]):
            if error is not None:
                self._finish(completion, CalendarWriteResult(
                    CalendarWriteStatus.SAVE_FAILED, entry, error, location=str(ics_path)
                ))
                return
            self._finish(completion, CalendarWriteResult(
                CalendarWriteStatus.ADDED, entry, location=str(ics_path)
            ))

        _open_async(['open', '-a', 'Calendar', str(ics_path)], "CalendarOpener", on_opened)


class GoogleCalendarLinkWriter(CalendarWriter):
    """Opens a pre-filled Google Calendar page in the browser."""

    name = "google"

    def __init__(self, open_url: bool = True):
        self.open_url = open_url

    def write(self, entry: CalendarEntry, completion: WriteCompletion) -> None:
        Log.section("Calendar Connector")
        Log.info(f"Creating Google Calendar event for: {entry.title}")

        try:
            url = build_google_calendar_url(entry)
        except Exception as e:
            Log.error(f"Google Calendar URL generation failed: {e}")
            self._finish(completion, CalendarWriteResult(CalendarWriteStatus.SAVE_FAILED, entry, str(e)))
            return

        Log.info(f"Generated Google Calendar URL: {url[:200]}")
        if not self.open_url:
            self._finish(completion, CalendarWriteResult(CalendarWriteStatus.ADDED, entry, location=url))
            return

        def on_opened(error: Optional[str]):
            status = CalendarWriteStatus.ADDED if error is None else CalendarWriteStatus.SAVE_FAILED
            self._finish(completion, CalendarWriteResult(status, entry, error or "", location=url))

        _open_async(['open', url], "GoogleCalendarOpener", on_opened)


def _describe_error(error) -> str:
    # NSError exposes localizedDescription(); plain exceptions do not
    describe = getattr(error, "localizedDescription", None)
    if callable(describe):
        try:
            return str(describe())
        except Exception:
            pass
    return str(error)


def get_calendar_writer(backend: str, ics_export_dir: Optional[Path] = None) -> CalendarWriter:
    """
    Factory function to get the calendar writer for a backend name.

    Args:
        backend: "apple", "ics" or "google"
        ics_export_dir: Export directory used by the "ics" backend

    Returns:
        CalendarWriter instance
    """
    if backend == "apple":
        return EventKitCalendarWriter()
    if backend == "ics":
        return IcsFileWriter(export_dir=ics_export_dir)
    if backend == "google":
        return GoogleCalendarLinkWriter()
    raise ValueError(f"Unknown calendar backend: {backend}")
