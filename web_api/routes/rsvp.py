"""
RSVP routes.

Endpoints:
- POST /api/rsvp - Add or remove an attendee's RSVP for an event
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.attendance import add_rsvp, remove_rsvp
from core.enums import RsvpAction
from core.exceptions import ValidationError
from core.realtime import RealtimeNotifier, get_notifier

router = APIRouter(prefix="/api", tags=["rsvp"])


class RsvpRequest(BaseModel):
    """Schema for an RSVP change."""

    eventId: str | None = None
    action: str | None = None
    attendeeName: Any = None


@router.post("/rsvp")
async def submit_rsvp(
    request: RsvpRequest,
    notifier: RealtimeNotifier = Depends(get_notifier),
) -> dict[str, Any]:
    """
    Add or remove an RSVP.

    After a successful change every connected client gets an
    attendance_update with the new attendee list.
    """
    if not request.eventId or not request.action:
        raise ValidationError("Event ID and action are required")

    try:
        action = RsvpAction(request.action)
    except ValueError:
        raise ValidationError('Invalid action. Must be "add" or "remove"')

    if action == RsvpAction.add:
        snapshot = await add_rsvp(request.eventId, request.attendeeName)
        message = "RSVP added successfully"
    else:
        snapshot = await remove_rsvp(request.eventId, request.attendeeName)
        message = "RSVP removed successfully"

    await notifier.broadcast_attendance_update(
        snapshot.event_id, list(snapshot.attendees)
    )

    return {"success": True, "message": message}
