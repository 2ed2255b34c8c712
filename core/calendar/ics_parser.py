"""
Parse public iCalendar (RFC 5545) feeds into CalendarEvent records.

The icalendar library does the RFC 5545 work (unfolding, escaping,
parameters, nested components). Only the handful of properties the RSVP
pages show are read. Google Calendar puts HTML into descriptions, so text
values then go through a fixed sequence of regex substitutions.

Pure functions: no I/O, same input gives the same output.
"""

import logging
import re
from datetime import datetime

from icalendar import Calendar

from core.exceptions import UpstreamFetchError

from .models import CalendarEvent

logger = logging.getLogger(__name__)

EVENT_ID_PREFIX = "cal-"

_ICS_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_ICS_DATETIME = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?$")

_ATTENDANCE_LIMIT = re.compile(r"limit:?\s*(\d+)", re.IGNORECASE)

_LINE_BREAK_TAG = re.compile(r"<(?:br|hr)\s*/?>", re.IGNORECASE)
_CLOSING_BLOCK_TAG = re.compile(r"</(?:p|div)\s*>", re.IGNORECASE)
_ANCHOR_TAG = re.compile(
    r"""<a\s+[^>]*href=["']([^"']+)["'][^>]*>(.*?)</a>""", re.IGNORECASE | re.DOTALL
)
_ANY_TAG = re.compile(r"<[^>]+>")
_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

# &amp; must come last so "&amp;lt;" decodes to "&lt;", not "<"
_HTML_ENTITIES = [
    (re.compile("&quot;", re.IGNORECASE), '"'),
    (re.compile("&#39;", re.IGNORECASE), "'"),
    (re.compile("&nbsp;", re.IGNORECASE), " "),
    (re.compile("&lt;", re.IGNORECASE), "<"),
    (re.compile("&gt;", re.IGNORECASE), ">"),
    (re.compile("&amp;", re.IGNORECASE), "&"),
]


def decode_html_entities(value: str) -> str:
    for pattern, replacement in _HTML_ENTITIES:
        value = pattern.sub(replacement, value)
    return value


def _anchor_to_text(match: re.Match) -> str:
    href = match.group(1)
    link_text = (match.group(2) or "").strip()
    if link_text and link_text != href:
        return f"{link_text} ({href})"
    return href


def strip_html(value: str) -> str:
    """
    Reduce the HTML Google Calendar emits to plain text.

    Order matters: line-breaking tags become newlines, links keep their
    target, every other tag is dropped, and only then are entities decoded
    (so an encoded "&lt;b&gt;" survives as literal text).
    """
    text = _LINE_BREAK_TAG.sub("\n", value)
    text = _CLOSING_BLOCK_TAG.sub("\n", text)
    text = _ANCHOR_TAG.sub(_anchor_to_text, text)
    text = _ANY_TAG.sub("", text)
    text = decode_html_entities(text)

    text = text.replace("\r", "")
    text = _TRAILING_SPACE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def sanitize_text(value) -> str:
    """Decoded property value -> plain display text."""
    if value is None:
        return ""
    return strip_html(str(value))


def normalize_ics_datetime(value: str) -> str | None:
    """
    Normalize a DTSTART/DTEND value to YYYY-MM-DDTHH:MM:SSZ.

    Accepts all-day dates (YYYYMMDD, midnight implied) and date-times
    (YYYYMMDDTHHMMSS with an optional trailing Z). Local and TZID times are
    taken as UTC wall time.

    Returns:
        The normalized string, or None if the value is in any other shape or
        names an impossible date.
    """
    value = value.strip()

    match = _ICS_DATE.match(value)
    if match:
        parts = [int(p) for p in match.groups()] + [0, 0, 0]
    else:
        match = _ICS_DATETIME.match(value)
        if not match:
            return None
        parts = [int(p) for p in match.groups()]

    try:
        parsed = datetime(*parts)
    except ValueError:
        return None
    return parsed.strftime("%Y-%m-%dT%H:%M:%SZ")


def extract_attendance_limit(description: str) -> int | None:
    """
    Find a "limit: N" marker in an event description.

    Returns:
        The limit, or None if the description does not name one.
    """
    match = _ATTENDANCE_LIMIT.search(description or "")
    if not match:
        return None
    return int(match.group(1))


def _raw_date_value(prop) -> str | None:
    """Serialized form of a DTSTART/DTEND property, e.g. "20240120T100000Z"."""
    if prop is None:
        return None
    if isinstance(prop, list):
        prop = prop[0]
    raw = prop.to_ical()
    return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)


def parse_vevent(component, source: str) -> CalendarEvent | None:
    """
    Build a CalendarEvent from one VEVENT component.

    Returns None when SUMMARY, DTSTART or UID is missing, or when a date is
    malformed; such entries are dropped from the feed. The icalendar library
    leaves out date properties it cannot parse, so those count as missing.
    """
    summary = component.get("SUMMARY")
    dtstart = _raw_date_value(component.get("DTSTART"))
    uid = str(component.get("UID", "")).strip()
    if summary is None or dtstart is None or not uid:
        logger.debug(f"Skipping VEVENT without SUMMARY/DTSTART/UID in {source}")
        return None

    start = normalize_ics_datetime(dtstart)
    if start is None:
        logger.debug(f"Skipping VEVENT {uid}: unparseable DTSTART {dtstart!r}")
        return None

    end = None
    has_end = "DTEND" in component or any(
        name == "DTEND" for name, _ in getattr(component, "errors", [])
    )
    if has_end:
        dtend = _raw_date_value(component.get("DTEND"))
        end = normalize_ics_datetime(dtend) if dtend is not None else None
        if end is None:
            logger.debug(f"Skipping VEVENT {uid}: unparseable DTEND {dtend!r}")
            return None

    description = sanitize_text(component.get("DESCRIPTION"))

    return CalendarEvent(
        id=f"{EVENT_ID_PREFIX}{uid}",
        title=sanitize_text(summary),
        date=start,
        end_date=end,
        description=description,
        location=sanitize_text(component.get("LOCATION")),
        source=source,
        attendance_limit_override=extract_attendance_limit(description),
    )


def parse_ics(text: str, source: str) -> list[CalendarEvent]:
    """
    Parse a whole feed.

    Args:
        text: Raw iCalendar text
        source: Calendar id to tag every event with

    Returns:
        Usable events in feed order

    Raises:
        UpstreamFetchError: If the text is not an iCalendar document
    """
    if not text.strip():
        return []

    try:
        calendar = Calendar.from_ical(text)
    except ValueError as e:
        raise UpstreamFetchError(f"Unreadable calendar feed from {source}: {e}")

    events = []
    for component in calendar.walk("VEVENT"):
        event = parse_vevent(component, source)
        if event is not None:
            events.append(event)
    return events
