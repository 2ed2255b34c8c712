"""Tests for the event API endpoints."""

from unittest.mock import AsyncMock

import pytest

from core.calendar import CalendarCache, FetchResult, set_calendar_cache
from core.calendar.models import CalendarEvent
from core.config import AppConfig, EventsConfig, set_app_config
from core.enums import TimeRange


@pytest.mark.usefixtures("seeded_events")
class TestListEvents:
    def test_lists_all_events_by_date(self, client):
        response = client.get("/api/events")

        assert response.status_code == 200
        body = response.json()
        assert [e["id"] for e in body] == ["cal-old", "cal-open", "cal-small"]
        assert body[2]["attendanceLimit"] == 1
        assert body[2]["attendingCount"] == 0
        assert body[2]["attendees"] == []

    def test_future_range(self, client):
        response = client.get("/api/events", params={"timeRange": "future"})

        assert [e["id"] for e in response.json()] == ["cal-open", "cal-small"]

    def test_past_range(self, client):
        response = client.get("/api/events", params={"timeRange": "past"})

        assert [e["id"] for e in response.json()] == ["cal-old"]

    def test_unknown_range_is_rejected(self, client):
        response = client.get("/api/events", params={"timeRange": "tomorrow"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "timeRange" in response.json()["message"]

    def test_default_range_comes_from_config(self, client, app_config):
        set_app_config(
            AppConfig(
                calendars=app_config.calendars,
                events=EventsConfig(auto_fetch=False, default_time_range=TimeRange.past),
            )
        )

        response = client.get("/api/events")

        assert [e["id"] for e in response.json()] == ["cal-old"]

    def test_includes_attendees(self, client):
        client.post(
            "/api/rsvp",
            json={"eventId": "cal-open", "action": "add", "attendeeName": "Alice"},
        )

        response = client.get("/api/events", params={"timeRange": "future"})

        open_event = response.json()[0]
        assert open_event["attendingCount"] == 1
        assert open_event["attendees"] == ["Alice"]


class TestListEventsAutoFetch:
    def test_syncs_calendar_before_listing(self, client, app_config):
        set_app_config(
            AppConfig(
                calendars=app_config.calendars,
                events=EventsConfig(auto_fetch=True, default_time_range=TimeRange.all),
            )
        )
        fetch = AsyncMock(
            return_value=FetchResult(
                events=(
                    CalendarEvent(
                        id="cal-synced",
                        title="From the calendar",
                        date="2030-05-01T18:00:00Z",
                        end_date=None,
                        description="limit: 4",
                        location="Library",
                        source="community@example.com",
                        attendance_limit_override=4,
                    ),
                ),
                fetched_sources=frozenset({"community@example.com"}),
            )
        )
        set_calendar_cache(CalendarCache(fetch=fetch))

        first = client.get("/api/events")
        second = client.get("/api/events")

        assert first.status_code == 200
        assert first.json() == second.json()
        event = first.json()[0]
        assert event["id"] == "cal-synced"
        assert event["date"] == "2030-05-01T18:00:00Z"
        assert event["endDate"] is None
        assert event["attendanceLimit"] == 4
        fetch.assert_awaited_once_with(app_config.calendars)

    def test_failed_fetch_keeps_existing_events(self, client, app_config, seeded_events):
        set_app_config(
            AppConfig(
                calendars=app_config.calendars,
                events=EventsConfig(auto_fetch=True, default_time_range=TimeRange.all),
            )
        )
        set_calendar_cache(CalendarCache(fetch=AsyncMock(return_value=FetchResult())))

        response = client.get("/api/events")

        assert response.status_code == 200
        assert len(response.json()) == 3


@pytest.mark.usefixtures("seeded_events")
class TestGetEvent:
    def test_returns_event(self, client):
        response = client.get("/api/events/cal-small")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "cal-small"
        assert body["title"] == "Small workshop"
        assert body["attendanceLimit"] == 1
        assert "attendees" not in body

    def test_unknown_event(self, client):
        response = client.get("/api/events/cal-missing")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Event not found"}


@pytest.mark.usefixtures("seeded_events")
class TestUpdateEvent:
    def test_sets_limit_and_broadcasts(self, client, admin_headers, mock_notifier):
        response = client.put(
            "/api/events/cal-open",
            json={"attendanceLimit": 10},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Attendance limit updated successfully"
        assert body["event"]["attendanceLimit"] == 10
        assert body["event"]["attendingCount"] == 0
        mock_notifier.broadcast_event_update.assert_awaited_once_with(body["event"])

    def test_null_clears_limit(self, client, admin_headers, mock_notifier):
        response = client.put(
            "/api/events/cal-small",
            json={"attendanceLimit": None},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["event"]["attendanceLimit"] is None

    def test_requires_admin_key(self, client, mock_notifier):
        response = client.put("/api/events/cal-open", json={"attendanceLimit": 10})

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Unauthorized: Invalid admin key",
        }
        mock_notifier.broadcast_event_update.assert_not_awaited()

    def test_other_fields_are_rejected(self, client, admin_headers, mock_notifier):
        response = client.put(
            "/api/events/cal-open",
            json={"attendanceLimit": 10, "title": "Renamed"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Only attendanceLimit")
        mock_notifier.broadcast_event_update.assert_not_awaited()

    def test_zero_limit_is_rejected(self, client, admin_headers, mock_notifier):
        response = client.put(
            "/api/events/cal-open",
            json={"attendanceLimit": 0},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_unknown_event(self, client, admin_headers, mock_notifier):
        response = client.put(
            "/api/events/cal-missing",
            json={"attendanceLimit": 3},
            headers=admin_headers,
        )

        assert response.status_code == 404
