"""Initial schema: events, rsvps and the donation ledger.

Revision ID: 001
Revises:
Create Date: 2026-10-17

Events are keyed by "cal-<uid>" so calendar syncs can match rows by
identity. RSVPs cascade away with their event.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("date", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("attendance_limit", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_events")),
    )
    op.create_index("idx_events_date", "events", ["date"], unique=False)
    op.create_index("idx_events_source", "events", ["source"], unique=False)

    op.create_table(
        "rsvps",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("attendee_name", sa.Text(), nullable=False),
        sa.Column(
            "attendance", sa.Text(), server_default=sa.text("'yes'"), nullable=False
        ),
        sa.Column("timestamp", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "attendance IN ('yes')", name=op.f("ck_rsvps_attendance_valid")
        ),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_rsvps_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_rsvps")),
    )
    op.create_index("idx_rsvps_event_id", "rsvps", ["event_id"], unique=False)
    op.create_index("idx_rsvps_attendance", "rsvps", ["attendance"], unique=False)

    op.create_table(
        "donations",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("donator", sa.Text(), nullable=True),
        sa.Column("entry_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_donations")),
    )
    op.create_index(
        "idx_donations_created_at", "donations", ["created_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("idx_donations_created_at", table_name="donations")
    op.drop_table("donations")
    op.drop_index("idx_rsvps_attendance", table_name="rsvps")
    op.drop_index("idx_rsvps_event_id", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_index("idx_events_source", table_name="events")
    op.drop_index("idx_events_date", table_name="events")
    op.drop_table("events")
