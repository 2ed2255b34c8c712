"""
Core business logic - framework-agnostic.
Used by the web API; nothing here imports FastAPI.
"""

# Database (SQLAlchemy)
from .database import (
    get_connection,
    get_transaction,
    get_engine,
    close_engine,
    create_schema,
)

# Configuration
from .config import (
    AppConfig,
    CalendarSource,
    EventsConfig,
    load_app_config,
    get_app_config,
    set_app_config,
)

# Errors
from .exceptions import (
    EventServiceError,
    ValidationError,
    EventNotFoundError,
    CapacityError,
    AdminAuthError,
    ConfigError,
    UpstreamFetchError,
    PersistenceError,
)

# Attendance (async functions - must be awaited)
from .attendance import (
    AttendanceSnapshot,
    validate_attendee_name,
    get_event,
    get_event_attendance,
    list_events_with_attendance,
    add_rsvp,
    remove_rsvp,
    parse_attendance_limit_update,
    update_attendance_limit,
)

# Realtime broadcast
from .realtime import RealtimeNotifier, notifier, get_notifier

# Donation ledger
from .donations import list_donations, create_donation

__all__ = [
    "get_connection",
    "get_transaction",
    "get_engine",
    "close_engine",
    "create_schema",
    "AppConfig",
    "CalendarSource",
    "EventsConfig",
    "load_app_config",
    "get_app_config",
    "set_app_config",
    "EventServiceError",
    "ValidationError",
    "EventNotFoundError",
    "CapacityError",
    "AdminAuthError",
    "ConfigError",
    "UpstreamFetchError",
    "PersistenceError",
    "AttendanceSnapshot",
    "validate_attendee_name",
    "get_event",
    "get_event_attendance",
    "list_events_with_attendance",
    "add_rsvp",
    "remove_rsvp",
    "parse_attendance_limit_update",
    "update_attendance_limit",
    "RealtimeNotifier",
    "notifier",
    "get_notifier",
    "list_donations",
    "create_donation",
]
