"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    func,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. EVENTS
# Rows are owned by the calendar reconciler; only attendance_limit
# is editable through the admin API.
# =====================================================
events = Table(
    "events",
    metadata,
    Column("id", Text, primary_key=True),  # "cal-<uid>" for calendar events
    Column("title", Text, nullable=False),
    Column("date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True)),
    Column("description", Text),
    Column("location", Text),
    Column("source", Text),  # calendar id the event was fetched from
    Column("attendance_limit", Integer),  # NULL = unlimited
    Index("idx_events_date", "date"),
    Index("idx_events_source", "source"),
)


# =====================================================
# 2. RSVPS
# =====================================================
rsvps = Table(
    "rsvps",
    metadata,
    Column("id", Text, primary_key=True),
    Column(
        "event_id",
        Text,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("attendee_name", Text, nullable=False),
    Column("attendance", Text, nullable=False, server_default="yes"),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    CheckConstraint("attendance IN ('yes')", name="attendance_valid"),
    Index("idx_rsvps_event_id", "event_id"),
    Index("idx_rsvps_attendance", "attendance"),
)


# =====================================================
# 3. DONATIONS
# Community ledger; positive amounts are donations, negative are spending.
# =====================================================
donations = Table(
    "donations",
    metadata,
    Column("id", Text, primary_key=True),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("description", Text),
    Column("donator", Text),
    Column("entry_date", DateTime(timezone=True)),
    Column(
        "created_at", DateTime(timezone=True), nullable=False, server_default=func.now()
    ),
    Index("idx_donations_created_at", "created_at"),
)
