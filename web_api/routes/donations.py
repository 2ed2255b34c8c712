"""
Donation ledger routes.

Endpoints:
- GET /api/donations - Latest entries and balance
- POST /api/donations - Record an entry (admin)
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from core.database import get_connection, get_transaction
from core.donations import DEFAULT_PAGE_SIZE, create_donation, list_donations
from web_api.auth import require_admin_key

router = APIRouter(prefix="/api", tags=["donations"])


class DonationRequest(BaseModel):
    """Schema for a new ledger entry. Negative amounts are expenses."""

    amount: Any = None
    description: str | None = None
    donator: str | None = None
    entry_date: datetime | None = None


@router.get("/donations")
async def get_donations(
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=500),
) -> dict[str, Any]:
    """Latest ledger entries (newest first) plus the running balance."""
    async with get_connection() as conn:
        return await list_donations(conn, limit)


@router.post("/donations", dependencies=[Depends(require_admin_key)])
async def add_donation(request: DonationRequest) -> dict[str, Any]:
    async with get_transaction() as conn:
        donation = await create_donation(
            conn,
            request.amount,
            description=request.description,
            donator=request.donator,
            entry_date=request.entry_date,
        )

    return {
        "success": True,
        "message": "Donation added successfully",
        "donation": donation,
    }
