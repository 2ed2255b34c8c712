# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

Each test gets a fresh SQLite database, a fixed application config with
auto-fetch off, and a TestClient whose lifespan has run.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

# Ensure the root main.py is importable
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from fastapi.testclient import TestClient

from core.config import AppConfig, CalendarSource, EventsConfig, set_app_config
from core.enums import TimeRange
from core.realtime import RealtimeNotifier, get_notifier
from core.tables import events

ADMIN_KEY = "test-admin-key"
CALENDAR_ID = "community@example.com"


@pytest.fixture
def app_config():
    config = AppConfig(
        calendars=(
            CalendarSource(
                url=f"https://calendar.google.com/calendar/embed?src={CALENDAR_ID}",
                name="Community",
            ),
        ),
        events=EventsConfig(auto_fetch=False, default_time_range=TimeRange.all),
    )
    set_app_config(config)
    return config


@pytest.fixture
def app(sqlite_database, app_config, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.delenv("DB_AUTO_CREATE_SCHEMA", raising=False)

    from main import app

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mock_notifier(app):
    """Replace the realtime notifier so broadcasts can be asserted."""
    notifier = AsyncMock(spec=RealtimeNotifier)
    app.dependency_overrides[get_notifier] = lambda: notifier
    return notifier


@pytest.fixture
def seeded_events(insert_rows):
    """An unlimited future event, a future event with room for one, a past event."""
    now = datetime.now(timezone.utc)
    insert_rows(
        events,
        [
            {
                "id": "cal-open",
                "title": "Open meetup",
                "date": now + timedelta(days=3),
                "source": CALENDAR_ID,
            },
            {
                "id": "cal-small",
                "title": "Small workshop",
                "date": now + timedelta(days=5),
                "source": CALENDAR_ID,
                "attendance_limit": 1,
            },
            {
                "id": "cal-old",
                "title": "Last year",
                "date": now - timedelta(days=365),
                "source": CALENDAR_ID,
            },
        ],
    )


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}
