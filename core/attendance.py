"""RSVP tracking: capacity-checked add/remove and attendance aggregation."""

import logging
import re
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from core.database import get_transaction
from core.enums import AttendanceStatus, TimeRange
from core.exceptions import CapacityError, EventNotFoundError, ValidationError
from core.locks import named_lock
from core.tables import events, rsvps
from core.timezone import format_utc_timestamp, utc_now

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
_SUSPICIOUS_NAME = re.compile(
    r"<script|javascript:|onerror=|onclick=|onload=", re.IGNORECASE
)

INVALID_NAME_MESSAGE = (
    "Invalid attendee name. Name must be 1-100 characters and contain no scripts."
)
LIMIT_ONLY_MESSAGE = (
    "Only attendanceLimit can be updated. "
    "Other event fields are synced from Google Calendar."
)


@dataclass(frozen=True)
class AttendanceSnapshot:
    """Who is attending an event right after a read or write."""

    event_id: str
    attendees: tuple[str, ...]

    @property
    def attending_count(self) -> int:
        return len(self.attendees)


def validate_attendee_name(name: Any) -> str:
    """
    Check an attendee name and return it trimmed.

    Raises:
        ValidationError: If the name is not a string, is empty or longer than
            100 characters after trimming, or looks like markup/script.
    """
    if not isinstance(name, str):
        raise ValidationError(INVALID_NAME_MESSAGE)

    trimmed = name.strip()
    if not trimmed or len(trimmed) > MAX_NAME_LENGTH:
        raise ValidationError(INVALID_NAME_MESSAGE)
    if _SUSPICIOUS_NAME.search(trimmed):
        raise ValidationError(INVALID_NAME_MESSAGE)

    return trimmed


def serialize_event(row: Mapping[str, Any]) -> dict[str, Any]:
    """Event row -> API/realtime JSON shape."""
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "location": row["location"],
        "date": format_utc_timestamp(row["date"]),
        "endDate": format_utc_timestamp(row["end_date"]),
        "source": row["source"],
        "attendanceLimit": row["attendance_limit"],
    }


async def _get_event_row(
    conn: AsyncConnection, event_id: str, for_update: bool = False
) -> Mapping[str, Any]:
    query = select(events).where(events.c.id == event_id)
    if for_update:
        query = query.with_for_update()
    result = await conn.execute(query)
    row = result.mappings().first()
    if not row:
        raise EventNotFoundError("Event not found")
    return row


async def get_event(conn: AsyncConnection, event_id: str) -> dict[str, Any]:
    """
    Single event without attendance aggregation.

    Raises:
        EventNotFoundError: If the id is unknown
    """
    return serialize_event(await _get_event_row(conn, event_id))


async def get_event_attendance(
    conn: AsyncConnection, event_id: str
) -> AttendanceSnapshot:
    """Names of everyone attending, oldest RSVP first."""
    result = await conn.execute(
        select(rsvps.c.attendee_name)
        .where(rsvps.c.event_id == event_id)
        .where(rsvps.c.attendance == AttendanceStatus.yes.value)
        .order_by(rsvps.c.timestamp)
    )
    return AttendanceSnapshot(
        event_id=event_id, attendees=tuple(row.attendee_name for row in result)
    )


async def list_events_with_attendance(
    conn: AsyncConnection,
    time_range: TimeRange = TimeRange.all,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    Events ordered by date, each with attendingCount and attendees.

    Args:
        conn: Database connection
        time_range: future (date after now), past (date before now) or all
        now: Reference time (defaults to the current UTC time)
    """
    now = now or utc_now()

    query = select(events).order_by(events.c.date)
    if time_range == TimeRange.future:
        query = query.where(events.c.date > now)
    elif time_range == TimeRange.past:
        query = query.where(events.c.date < now)

    event_rows = (await conn.execute(query)).mappings().all()
    if not event_rows:
        return []

    attendee_result = await conn.execute(
        select(rsvps.c.event_id, rsvps.c.attendee_name)
        .where(rsvps.c.event_id.in_([row["id"] for row in event_rows]))
        .where(rsvps.c.attendance == AttendanceStatus.yes.value)
        .order_by(rsvps.c.timestamp)
    )
    attendees_by_event: dict[str, list[str]] = defaultdict(list)
    for row in attendee_result:
        attendees_by_event[row.event_id].append(row.attendee_name)

    listed = []
    for row in event_rows:
        attendees = attendees_by_event.get(row["id"], [])
        listed.append(
            {
                **serialize_event(row),
                "attendingCount": len(attendees),
                "attendees": attendees,
            }
        )
    return listed


def _rsvp_lock_name(event_id: str) -> str:
    return f"rsvp:{event_id}"


async def add_rsvp(event_id: str, attendee_name: Any) -> AttendanceSnapshot:
    """
    Record one "yes" RSVP, respecting the event's attendance limit.

    The capacity check and the insert share a transaction that holds a row
    lock on the event, and adds for the same event are serialized in-process,
    so concurrent callers cannot overshoot the limit.

    Returns:
        Attendance after the insert

    Raises:
        EventNotFoundError: If the event does not exist
        ValidationError: If the name is rejected
        CapacityError: If the event is already full
    """
    async with named_lock(_rsvp_lock_name(event_id)):
        async with get_transaction() as conn:
            event_row = await _get_event_row(conn, event_id, for_update=True)
            name = validate_attendee_name(attendee_name)

            limit = event_row["attendance_limit"]
            if limit is not None:
                count_result = await conn.execute(
                    select(func.count())
                    .select_from(rsvps)
                    .where(rsvps.c.event_id == event_id)
                    .where(rsvps.c.attendance == AttendanceStatus.yes.value)
                )
                if count_result.scalar_one() >= limit:
                    raise CapacityError("Event is full")

            await conn.execute(
                insert(rsvps).values(
                    id=str(uuid.uuid4()),
                    event_id=event_id,
                    attendee_name=name,
                    attendance=AttendanceStatus.yes.value,
                    timestamp=utc_now(),
                )
            )
            snapshot = await get_event_attendance(conn, event_id)

    logger.info(f"RSVP added for event {event_id} ({snapshot.attending_count} attending)")
    return snapshot


async def remove_rsvp(event_id: str, attendee_name: Any) -> AttendanceSnapshot:
    """
    Delete one "yes" RSVP with this name.

    Names are not unique: when several attendees share a name, one of their
    RSVPs (unspecified which) is removed. Removing a name that has no RSVP
    is not an error.

    Raises:
        EventNotFoundError: If the event does not exist
        ValidationError: If the name is rejected
    """
    async with named_lock(_rsvp_lock_name(event_id)):
        async with get_transaction() as conn:
            await _get_event_row(conn, event_id, for_update=True)
            name = validate_attendee_name(attendee_name)

            match = await conn.execute(
                select(rsvps.c.id)
                .where(rsvps.c.event_id == event_id)
                .where(rsvps.c.attendee_name == name)
                .where(rsvps.c.attendance == AttendanceStatus.yes.value)
                .limit(1)
            )
            rsvp_id = match.scalar_one_or_none()
            if rsvp_id is not None:
                await conn.execute(delete(rsvps).where(rsvps.c.id == rsvp_id))

            snapshot = await get_event_attendance(conn, event_id)

    logger.info(
        f"RSVP removed for event {event_id} ({snapshot.attending_count} attending)"
    )
    return snapshot


def parse_attendance_limit_update(body: Any) -> int | None:
    """
    Validate an admin update body.

    The body must contain exactly one key, attendanceLimit, holding a
    positive integer (or digit string), or null / "" for unlimited.

    Raises:
        ValidationError: On any other key or value
    """
    if not isinstance(body, dict) or set(body) != {"attendanceLimit"}:
        raise ValidationError(LIMIT_ONLY_MESSAGE)

    value = body["attendanceLimit"]
    if value is None or value == "":
        return None

    limit = None
    if isinstance(value, int) and not isinstance(value, bool):
        limit = value
    elif isinstance(value, str) and value.strip().isdigit():
        limit = int(value.strip())

    if limit is None or limit < 1:
        raise ValidationError("Attendance limit must be a positive number or null")
    return limit


async def update_attendance_limit(event_id: str, limit: int | None) -> dict[str, Any]:
    """
    Set an event's attendance limit (admin only).

    A limit written in the event's calendar description replaces this value
    on the next sync.

    Returns:
        The event with attendees and attendingCount

    Raises:
        EventNotFoundError: If the event does not exist
    """
    async with get_transaction() as conn:
        result = await conn.execute(
            update(events)
            .where(events.c.id == event_id)
            .values(attendance_limit=limit)
        )
        if result.rowcount == 0:
            raise EventNotFoundError("Event not found")

        event = await get_event(conn, event_id)
        snapshot = await get_event_attendance(conn, event_id)

    logger.info(f"Attendance limit for event {event_id} set to {limit}")
    return {
        **event,
        "attendees": list(snapshot.attendees),
        "attendingCount": snapshot.attending_count,
    }
