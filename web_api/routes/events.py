"""
Event routes.

Endpoints:
- GET /api/events - List events with attendance (syncs calendars first when autoFetch is on)
- GET /api/events/{event_id} - Get a single event
- PUT /api/events/{event_id} - Update an event's attendance limit (admin)
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from core.attendance import (
    get_event,
    list_events_with_attendance,
    parse_attendance_limit_update,
    update_attendance_limit,
)
from core.calendar import CalendarCache, get_calendar_cache, sync_calendar_events
from core.config import AppConfig, get_app_config
from core.database import get_connection
from core.enums import TimeRange
from core.exceptions import ValidationError
from core.realtime import RealtimeNotifier, get_notifier
from web_api.auth import require_admin_key

router = APIRouter(prefix="/api", tags=["events"])


def _parse_time_range(value: str | None, default: TimeRange) -> TimeRange:
    if value is None or value == "":
        return default
    try:
        return TimeRange(value)
    except ValueError:
        raise ValidationError(
            'Invalid timeRange. Must be "future", "past" or "all"'
        )


@router.get("/events")
async def list_events(
    time_range: str | None = Query(default=None, alias="timeRange"),
    config: AppConfig = Depends(get_app_config),
    cache: CalendarCache = Depends(get_calendar_cache),
) -> list[dict[str, Any]]:
    """
    List events ordered by date, each with attendingCount and attendees.

    When events.autoFetch is enabled the configured calendars are synced
    into the database first (served from the calendar cache within its TTL).
    """
    selected_range = _parse_time_range(time_range, config.events.default_time_range)

    if config.events.auto_fetch:
        await sync_calendar_events(cache, config.calendars)

    async with get_connection() as conn:
        return await list_events_with_attendance(conn, selected_range)


@router.get("/events/{event_id}")
async def get_event_endpoint(event_id: str) -> dict[str, Any]:
    """Get a single event without attendance aggregation."""
    async with get_connection() as conn:
        return await get_event(conn, event_id)


@router.put("/events/{event_id}", dependencies=[Depends(require_admin_key)])
async def update_event(
    event_id: str,
    body: Any = Body(default=None),
    notifier: RealtimeNotifier = Depends(get_notifier),
) -> dict[str, Any]:
    """
    Update an event's attendance limit.

    Only attendanceLimit can be changed; everything else comes from the
    calendar. Connected clients receive an event_update message.
    """
    limit = parse_attendance_limit_update(body)
    event = await update_attendance_limit(event_id, limit)

    await notifier.broadcast_event_update(event)

    return {
        "success": True,
        "message": "Attendance limit updated successfully",
        "event": event,
    }
