"""Fetch public Google Calendar feeds and parse them into events."""

import logging
import re
from urllib.parse import quote, unquote

import httpx
import sentry_sdk

from core.config import CalendarSource, get_calendar_fetch_timeout
from core.exceptions import UpstreamFetchError

from .ics_parser import parse_ics
from .models import CalendarEvent, FetchResult

logger = logging.getLogger(__name__)

ICAL_URL_TEMPLATE = "https://calendar.google.com/calendar/ical/{calendar_id}/public/basic.ics"

# Checked in order; the first pattern that matches wins
_CALENDAR_ID_PATTERNS = [
    re.compile(r"src=([^&]+)"),  # embed URL: .../embed?src=<id>&ctz=...
    re.compile(r"calendar\.google\.com/calendar/ical/([^/]+)/"),  # direct feed URL
    re.compile(r"calendar/([^/?&]+)"),  # anything else shaped like calendar/<id>
]


def extract_calendar_id(url: str) -> str | None:
    """
    Pull the calendar id out of a configured calendar URL.

    Returns:
        The URL-decoded calendar id, or None if no known shape matches.
    """
    for pattern in _CALENDAR_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return unquote(match.group(1))
    return None


def build_ical_url(calendar_id: str) -> str:
    """Public iCal feed URL for a calendar id."""
    return ICAL_URL_TEMPLATE.format(calendar_id=quote(calendar_id, safe=""))


async def fetch_calendar_feed(client: httpx.AsyncClient, calendar_id: str) -> str:
    """
    Download the raw iCal feed of one calendar.

    Raises:
        UpstreamFetchError: On a transport failure or a non-2xx response
    """
    url = build_ical_url(calendar_id)
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise UpstreamFetchError(f"Failed to fetch calendar {calendar_id}: {e}")

    if not response.is_success:
        raise UpstreamFetchError(
            f"Failed to fetch calendar {calendar_id}: HTTP {response.status_code}"
        )
    return response.text


async def _fetch_all(
    client: httpx.AsyncClient, calendars: tuple[CalendarSource, ...] | list[CalendarSource]
) -> FetchResult:
    events: list[CalendarEvent] = []
    fetched_sources: set[str] = set()

    for calendar in calendars:
        if not calendar.enabled:
            continue

        calendar_id = extract_calendar_id(calendar.url)
        if not calendar_id:
            logger.warning(f"Could not extract calendar ID from URL: {calendar.url}")
            continue

        try:
            feed = await fetch_calendar_feed(client, calendar_id)
            calendar_events = parse_ics(feed, calendar_id)
        except UpstreamFetchError as e:
            logger.error(
                str(e),
                extra={"calendar_id": calendar_id, "calendar_name": calendar.name},
            )
            sentry_sdk.capture_exception(e)
            continue

        logger.info(
            f"Fetched {len(calendar_events)} events from calendar "
            f"{calendar.name or calendar_id}"
        )
        events.extend(calendar_events)
        fetched_sources.add(calendar_id)

    return FetchResult(events=tuple(events), fetched_sources=frozenset(fetched_sources))


async def fetch_calendar_events(
    calendars: tuple[CalendarSource, ...] | list[CalendarSource],
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """
    Fetch and parse every enabled calendar.

    A calendar that cannot be resolved, downloaded or parsed is logged and skipped;
    the others are still fetched. Calendars are fetched one after another.

    Args:
        calendars: Configured calendar sources
        client: HTTP client to use (a short-lived one is created if omitted)

    Returns:
        FetchResult with all events and the ids of calendars that succeeded
    """
    if client is not None:
        return await _fetch_all(client, calendars)

    async with httpx.AsyncClient(
        timeout=get_calendar_fetch_timeout(), follow_redirects=True
    ) as owned_client:
        return await _fetch_all(owned_client, calendars)
