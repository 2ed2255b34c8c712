"""Data types passed between the calendar parser, fetcher and reconciler."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CalendarEvent:
    """One usable VEVENT from a public calendar feed.

    Dates are UTC strings in the form YYYY-MM-DDTHH:MM:SSZ.
    attendance_limit_override is None when the description names no limit,
    which is different from an explicit "limit: 0".
    """

    id: str
    title: str
    date: str
    end_date: str | None
    description: str
    location: str
    source: str
    attendance_limit_override: int | None = None


@dataclass(frozen=True)
class FetchResult:
    """Events from every calendar fetched in one pass.

    fetched_sources lists the calendar ids whose feed was retrieved and parsed;
    only those calendars take part in stale-row deletion.
    """

    events: tuple[CalendarEvent, ...] = ()
    fetched_sources: frozenset[str] = field(default_factory=frozenset)


@dataclass
class ReconcileResult:
    added: int = 0
    updated: int = 0
    deleted: int = 0
