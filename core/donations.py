"""Community donation ledger."""

import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncConnection

from core.exceptions import ValidationError
from core.tables import donations
from core.timezone import format_utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
CENTS = Decimal("0.01")
# Largest value the Numeric(10, 2) amount column holds
MAX_AMOUNT = Decimal("99999999.99")


def _serialize_donation(row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "amount": float(row["amount"]),
        "description": row["description"] or "",
        "donator": row["donator"] or "",
        "entry_date": format_utc_timestamp(row["entry_date"]),
        "created_at": format_utc_timestamp(row["created_at"]),
    }


async def list_donations(
    conn: AsyncConnection, limit: int = DEFAULT_PAGE_SIZE
) -> dict[str, Any]:
    """
    Latest ledger entries plus the running balance.

    Entries are ordered by entry_date, falling back to created_at for rows
    without one, newest first.
    """
    result = await conn.execute(
        select(donations)
        .order_by(func.coalesce(donations.c.entry_date, donations.c.created_at).desc())
        .limit(limit)
    )
    rows = result.mappings().all()

    balance_result = await conn.execute(
        select(func.coalesce(func.sum(donations.c.amount), 0))
    )
    balance = balance_result.scalar_one()

    return {
        "balance": float(balance or 0),
        "donations": [_serialize_donation(row) for row in rows],
    }


def parse_amount(value: Any) -> Decimal:
    """
    Raises:
        ValidationError: If the amount is missing, not a number, zero once
            rounded to cents, or too large for the ledger column
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("Amount is required and must not be zero")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Amount must be a number")
    if not amount.is_finite():
        raise ValidationError("Amount is required and must not be zero")
    try:
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValidationError("Amount is too large")
    if amount == 0:
        raise ValidationError("Amount is required and must not be zero")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError("Amount is too large")
    return amount


async def create_donation(
    conn: AsyncConnection,
    amount: Any,
    description: str | None = None,
    donator: str | None = None,
    entry_date: datetime | None = None,
) -> dict[str, Any]:
    """Insert one ledger entry and return it."""
    parsed_amount = parse_amount(amount)
    donation_id = str(uuid.uuid4())

    await conn.execute(
        insert(donations).values(
            id=donation_id,
            amount=parsed_amount,
            description=description or None,
            donator=donator or None,
            entry_date=entry_date,
        )
    )
    logger.info(f"Donation {donation_id} recorded ({parsed_amount})")

    return {
        "id": donation_id,
        "amount": float(parsed_amount),
        "description": description or "",
        "donator": donator or "",
        "entry_date": format_utc_timestamp(entry_date),
    }
