"""
Reconcile persisted events with the latest calendar fetch.

Runs when the event list is read with auto-fetch enabled:
- upserts every fetched event by its stable id
- keeps admin-set attendance limits unless the description names one
- deletes rows whose calendar no longer lists them (RSVPs cascade)

Everything happens in one transaction; a failure leaves the previous state.
"""

import logging
from collections import defaultdict
from typing import Sequence

import sentry_sdk
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from core.config import CalendarSource
from core.database import get_transaction
from core.exceptions import PersistenceError
from core.locks import named_lock
from core.tables import events
from core.timezone import parse_utc_timestamp

from .cache import CalendarCache
from .models import CalendarEvent, FetchResult, ReconcileResult

logger = logging.getLogger(__name__)

SYNC_LOCK_NAME = "calendar-sync"


def resolve_attendance_limit(
    event: CalendarEvent, existing_limits: dict[str, int | None]
) -> int | None:
    """
    Pick the limit a synced event ends up with.

    Precedence: limit named in the calendar description (even over a value an
    admin set), then the limit already stored for this event, then unlimited.
    """
    if event.attendance_limit_override is not None:
        return event.attendance_limit_override
    if event.id in existing_limits:
        return existing_limits[event.id]
    return None


def _event_values(event: CalendarEvent) -> dict:
    return {
        "title": event.title,
        "date": parse_utc_timestamp(event.date),
        "end_date": parse_utc_timestamp(event.end_date),
        "description": event.description,
        "location": event.location,
        "source": event.source,
    }


def _upsert_events(conn: AsyncConnection, rows: list[dict]):
    """INSERT ... ON CONFLICT (id) DO UPDATE for every row in one statement."""
    dialect_insert = sqlite_insert if conn.dialect.name == "sqlite" else pg_insert
    stmt = dialect_insert(events).values(rows)
    return stmt.on_conflict_do_update(
        index_elements=[events.c.id],
        set_={column: stmt.excluded[column] for column in rows[0] if column != "id"},
    )


async def reconcile_calendar_events(
    conn: AsyncConnection, fetch_result: FetchResult
) -> ReconcileResult:
    """
    Apply a fetch result to the events table.

    Must be called inside a transaction. Stale rows are looked for only among
    calendars in fetch_result.fetched_sources, and each calendar is compared
    only against its own fetched ids.

    Args:
        conn: Connection with an open transaction
        fetch_result: Output of the calendar fetcher

    Returns:
        ReconcileResult with added/updated/deleted counts
    """
    result = ReconcileResult()

    # The same UID listed twice in one pass: the later entry wins
    fetched = {event.id: event for event in fetch_result.events}

    if fetched:
        existing = await conn.execute(
            select(events.c.id, events.c.attendance_limit).where(
                events.c.id.in_(list(fetched))
            )
        )
        existing_limits = {row.id: row.attendance_limit for row in existing}

        rows = []
        for event in fetched.values():
            rows.append(
                {
                    "id": event.id,
                    **_event_values(event),
                    "attendance_limit": resolve_attendance_limit(event, existing_limits),
                }
            )
        await conn.execute(_upsert_events(conn, rows))

        result.updated = len(existing_limits)
        result.added = len(rows) - result.updated

    if fetch_result.fetched_sources:
        fetched_ids_by_source: dict[str, set[str]] = defaultdict(set)
        for event in fetched.values():
            fetched_ids_by_source[event.source].add(event.id)

        stored = await conn.execute(
            select(events.c.id, events.c.source).where(
                events.c.source.in_(list(fetch_result.fetched_sources))
            )
        )
        stale_ids = [
            row.id
            for row in stored
            if row.id not in fetched_ids_by_source.get(row.source, set())
        ]

        if stale_ids:
            await conn.execute(delete(events).where(events.c.id.in_(stale_ids)))
            result.deleted = len(stale_ids)
            logger.info(f"Removed {len(stale_ids)} events no longer in their calendar")

    return result


async def sync_calendar_events(
    cache: CalendarCache, calendars: Sequence[CalendarSource]
) -> ReconcileResult | None:
    """
    Fetch (through the cache) and reconcile in one transaction.

    Returns:
        ReconcileResult, or None when no calendar could be fetched and the
        sync was skipped

    Raises:
        PersistenceError: If the database failed (nothing was changed)
    """
    fetch_result = await cache.get_or_refresh(calendars)
    if not fetch_result.fetched_sources:
        logger.info("No calendar fetched successfully, skipping event sync")
        return None

    async with named_lock(SYNC_LOCK_NAME):
        try:
            async with get_transaction() as conn:
                result = await reconcile_calendar_events(conn, fetch_result)
        except SQLAlchemyError as e:
            logger.error(f"Calendar sync rolled back: {e}")
            sentry_sdk.capture_exception(e)
            raise PersistenceError("Failed to sync calendar events") from e

    logger.info(
        f"Calendar sync complete: {result.added} added, {result.updated} updated, "
        f"{result.deleted} deleted"
    )
    return result
