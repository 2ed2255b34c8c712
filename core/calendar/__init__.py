"""Public Google Calendar feeds: parsing, fetching, caching and syncing to the DB."""

from .cache import (
    CalendarCache,
    clear_calendar_cache,
    get_calendar_cache,
    set_calendar_cache,
)
from .fetcher import build_ical_url, extract_calendar_id, fetch_calendar_events
from .ics_parser import parse_ics, sanitize_text
from .models import CalendarEvent, FetchResult, ReconcileResult
from .reconciler import reconcile_calendar_events, sync_calendar_events

__all__ = [
    "CalendarCache",
    "clear_calendar_cache",
    "get_calendar_cache",
    "set_calendar_cache",
    "build_ical_url",
    "extract_calendar_id",
    "fetch_calendar_events",
    "parse_ics",
    "sanitize_text",
    "CalendarEvent",
    "FetchResult",
    "ReconcileResult",
    "reconcile_calendar_events",
    "sync_calendar_events",
]
