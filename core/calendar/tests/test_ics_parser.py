"""Tests for the iCalendar feed parser."""

from datetime import date, datetime, timezone

import pytest
from icalendar import Calendar, Event

from core.calendar.ics_parser import (
    extract_attendance_limit,
    normalize_ics_datetime,
    parse_ics,
    sanitize_text,
    strip_html,
)
from core.exceptions import UpstreamFetchError

SOURCE = "community@group.calendar.google.com"


def _feed(*vevents: str) -> str:
    body = "\r\n".join(vevents)
    return (
        "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//Test//EN\r\n"
        f"{body}\r\nEND:VCALENDAR\r\n"
    )


def _vevent(*lines: str) -> str:
    return "\r\n".join(["BEGIN:VEVENT", *lines, "END:VEVENT"])


class TestNormalizeIcsDatetime:
    def test_utc_datetime(self):
        assert normalize_ics_datetime("20240120T100000Z") == "2024-01-20T10:00:00Z"

    def test_floating_datetime_is_taken_as_utc(self):
        assert normalize_ics_datetime("20240120T100000") == "2024-01-20T10:00:00Z"

    def test_all_day_date_is_midnight(self):
        assert normalize_ics_datetime("20240120") == "2024-01-20T00:00:00Z"

    def test_rejects_other_shapes(self):
        assert normalize_ics_datetime("2024-01-20") is None
        assert normalize_ics_datetime("20240120T1000Z") is None
        assert normalize_ics_datetime("") is None

    def test_rejects_impossible_dates(self):
        assert normalize_ics_datetime("20240231T100000Z") is None
        assert normalize_ics_datetime("20241301") is None


class TestExtractAttendanceLimit:
    def test_finds_limit_with_colon(self):
        assert extract_attendance_limit("Bring snacks. Limit: 5 people") == 5

    def test_is_case_insensitive_and_colon_optional(self):
        assert extract_attendance_limit("LIMIT 12") == 12

    def test_explicit_zero_is_a_limit(self):
        """'limit: 0' is an override of 0, not 'no limit'."""
        assert extract_attendance_limit("limit: 0") == 0

    def test_no_marker_means_none(self):
        assert extract_attendance_limit("Open to everyone") is None
        assert extract_attendance_limit("") is None


class TestTextCleanup:
    def test_line_break_tags_become_newlines(self):
        assert strip_html("one<br>two<br/>three<hr />four") == "one\ntwo\nthree\nfour"

    def test_links_keep_their_target(self):
        assert strip_html('<a href="https://example.com">Tickets</a>') == (
            "Tickets (https://example.com)"
        )

    def test_link_whose_text_is_the_url(self):
        assert strip_html(
            '<a href="https://example.com">https://example.com</a>'
        ) == "https://example.com"

    def test_tags_are_removed_before_entities_are_decoded(self):
        """An encoded tag is content, not markup."""
        assert strip_html("<b>Bold</b> &lt;b&gt;literal&lt;/b&gt;") == (
            "Bold <b>literal</b>"
        )

    def test_ampersand_is_decoded_last(self):
        assert strip_html("Fish &amp;lt; chips") == "Fish &lt; chips"

    def test_whitespace_is_tidied(self):
        assert strip_html("<p>First</p>  \n<p>Second</p><br><br><br>End") == (
            "First\n\nSecond\n\nEnd"
        )

    def test_sanitize_text_strips_html(self):
        assert sanitize_text("Line one<br>Line two, with comma") == (
            "Line one\nLine two, with comma"
        )

    def test_sanitize_text_of_missing_value(self):
        assert sanitize_text(None) == ""


class TestParseIcs:
    def test_parses_event_fields(self):
        text = _feed(
            _vevent(
                "UID:abc123@google.com",
                "SUMMARY:Board game night",
                "DTSTART:20240120T180000Z",
                "DTEND:20240120T220000Z",
                r"DESCRIPTION:Bring a game\, any game.<br>Limit: 8",
                "LOCATION:Community hall",
            )
        )

        events = parse_ics(text, SOURCE)

        assert len(events) == 1
        event = events[0]
        assert event.id == "cal-abc123@google.com"
        assert event.title == "Board game night"
        assert event.date == "2024-01-20T18:00:00Z"
        assert event.end_date == "2024-01-20T22:00:00Z"
        assert event.description == "Bring a game, any game.\nLimit: 8"
        assert event.location == "Community hall"
        assert event.source == SOURCE
        assert event.attendance_limit_override == 8

    def test_all_day_event(self):
        text = _feed(
            _vevent(
                "UID:allday",
                "SUMMARY:Festival",
                "DTSTART;VALUE=DATE:20240601",
                "DTEND;VALUE=DATE:20240602",
            )
        )

        event = parse_ics(text, SOURCE)[0]

        assert event.date == "2024-06-01T00:00:00Z"
        assert event.end_date == "2024-06-02T00:00:00Z"

    def test_tzid_parameter_is_ignored(self):
        text = _feed(
            _vevent(
                "UID:tz",
                "SUMMARY:Meetup",
                "DTSTART;TZID=Europe/Amsterdam:20240120T100000",
            )
        )

        assert parse_ics(text, SOURCE)[0].date == "2024-01-20T10:00:00Z"

    def test_missing_end_is_allowed(self):
        text = _feed(_vevent("UID:x", "SUMMARY:Walk", "DTSTART:20240120T100000Z"))

        event = parse_ics(text, SOURCE)[0]

        assert event.end_date is None
        assert event.description == ""
        assert event.location == ""
        assert event.attendance_limit_override is None

    def test_skips_events_missing_required_fields(self):
        text = _feed(
            _vevent("SUMMARY:No uid", "DTSTART:20240120T100000Z"),
            _vevent("UID:no-summary", "DTSTART:20240120T100000Z"),
            _vevent("UID:no-start", "SUMMARY:No start"),
            _vevent("UID:ok", "SUMMARY:Kept", "DTSTART:20240120T100000Z"),
        )

        events = parse_ics(text, SOURCE)

        assert [e.id for e in events] == ["cal-ok"]

    def test_skips_events_with_malformed_dates(self):
        text = _feed(
            _vevent("UID:bad-start", "SUMMARY:A", "DTSTART:tomorrow"),
            _vevent(
                "UID:bad-end",
                "SUMMARY:B",
                "DTSTART:20240120T100000Z",
                "DTEND:20240199T100000Z",
            ),
            _vevent("UID:good", "SUMMARY:C", "DTSTART:20240120T100000Z"),
        )

        assert [e.id for e in parse_ics(text, SOURCE)] == ["cal-good"]

    def test_folded_description(self):
        text = _feed(
            _vevent(
                "UID:fold",
                "SUMMARY:Talk",
                "DTSTART:20240120T100000Z",
                "DESCRIPTION:Seats are li",
                " mited: limit: 30",
            )
        )

        event = parse_ics(text, SOURCE)[0]

        assert event.description == "Seats are limited: limit: 30"
        assert event.attendance_limit_override == 30

    def test_properties_after_an_alarm_still_belong_to_the_event(self):
        text = _feed(
            _vevent(
                "UID:alarm",
                "DTSTART:20240120T100000Z",
                "BEGIN:VALARM",
                "ACTION:DISPLAY",
                "DESCRIPTION:Reminder",
                "TRIGGER:-PT15M",
                "END:VALARM",
                "SUMMARY:Team",
                "DESCRIPTION:Weekly sync",
            )
        )

        events = parse_ics(text, SOURCE)

        assert [e.id for e in events] == ["cal-alarm"]
        assert events[0].title == "Team"
        assert events[0].description == "Weekly sync"

    def test_escaped_text_is_decoded(self):
        text = _feed(
            _vevent(
                "UID:esc",
                r"SUMMARY:Quiz\; round one",
                "DTSTART:20240120T100000Z",
                r"DESCRIPTION:First line\nSecond line",
            )
        )

        event = parse_ics(text, SOURCE)[0]

        assert event.title == "Quiz; round one"
        assert event.description == "First line\nSecond line"

    def test_unreadable_feed_raises(self):
        with pytest.raises(UpstreamFetchError):
            parse_ics("this is not a calendar", SOURCE)

    def test_feed_without_events(self):
        assert parse_ics(_feed(""), SOURCE) == []
        assert parse_ics("", SOURCE) == []

    def test_same_input_same_output(self):
        text = _feed(_vevent("UID:x", "SUMMARY:Walk", "DTSTART:20240120T100000Z"))
        assert parse_ics(text, SOURCE) == parse_ics(text, SOURCE)


class TestParseGeneratedFeed:
    """Feeds serialized by the icalendar library (folding, escaping, CRLF)."""

    def _calendar(self) -> Calendar:
        cal = Calendar()
        cal.add("prodid", "-//Community//Events//EN")
        cal.add("version", "2.0")
        return cal

    def test_round_trips_library_output(self):
        cal = self._calendar()

        limited = Event()
        limited.add("uid", "limited-1@example.com")
        limited.add("summary", "Pottery workshop; beginners, welcome")
        limited.add("dtstart", datetime(2024, 3, 2, 14, 0, tzinfo=timezone.utc))
        limited.add("dtend", datetime(2024, 3, 2, 16, 0, tzinfo=timezone.utc))
        limited.add(
            "description",
            "Clay and tools are provided for everyone who signs up in advance. "
            "Please arrive ten minutes early so we can start on time. limit: 5",
        )
        limited.add("location", "Studio 4, Main Street")
        cal.add_component(limited)

        all_day = Event()
        all_day.add("uid", "allday-1@example.com")
        all_day.add("summary", "Neighbourhood cleanup")
        all_day.add("dtstart", date(2024, 3, 9))
        cal.add_component(all_day)

        events = parse_ics(cal.to_ical().decode("utf-8"), SOURCE)

        assert [e.id for e in events] == [
            "cal-limited-1@example.com",
            "cal-allday-1@example.com",
        ]
        assert events[0].title == "Pottery workshop; beginners, welcome"
        assert events[0].date == "2024-03-02T14:00:00Z"
        assert events[0].end_date == "2024-03-02T16:00:00Z"
        assert events[0].location == "Studio 4, Main Street"
        assert events[0].description.endswith("limit: 5")
        assert events[0].attendance_limit_override == 5
        assert events[1].date == "2024-03-09T00:00:00Z"
        assert events[1].attendance_limit_override is None
