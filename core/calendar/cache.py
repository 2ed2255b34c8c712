"""In-memory TTL cache in front of the calendar fetcher."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from core.config import DEFAULT_CACHE_TTL_SECONDS, CalendarSource, get_app_config

from .fetcher import fetch_calendar_events
from .models import FetchResult

logger = logging.getLogger(__name__)

FetchFunc = Callable[[Sequence[CalendarSource]], Awaitable[FetchResult]]


@dataclass(frozen=True)
class _Snapshot:
    result: FetchResult
    fetched_at: float


class CalendarCache:
    """Caches the last FetchResult for a fixed time-to-live.

    The result and its timestamp are stored together in one immutable
    snapshot, so readers never see a new result paired with an old time.
    Only one refresh runs at a time; callers that queue behind it reuse
    what it fetched.
    """

    def __init__(
        self,
        fetch: FetchFunc = fetch_calendar_events,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: _Snapshot | None = None
        self._lock = asyncio.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _fresh(self) -> FetchResult | None:
        snapshot = self._snapshot
        if snapshot is not None and self._clock() - snapshot.fetched_at < self._ttl:
            return snapshot.result
        return None

    async def get_or_refresh(self, calendars: Sequence[CalendarSource]) -> FetchResult:
        """Return the cached result, fetching again once it is older than the TTL."""
        cached = self._fresh()
        if cached is not None:
            logger.debug("Using cached calendar events")
            return cached

        async with self._lock:
            cached = self._fresh()
            if cached is not None:
                return cached

            result = await self._fetch(calendars)
            self._snapshot = _Snapshot(result=result, fetched_at=self._clock())
            logger.info(
                f"Calendar events fetched from Google Calendar "
                f"({len(result.events)} events, "
                f"{len(result.fetched_sources)} calendars)"
            )
            return result


# Process-wide cache, replaced by tests through set_calendar_cache()
_calendar_cache: CalendarCache | None = None


def get_calendar_cache() -> CalendarCache:
    """Get the shared calendar cache (FastAPI dependency)."""
    global _calendar_cache
    if _calendar_cache is None:
        _calendar_cache = CalendarCache(
            ttl_seconds=get_app_config().events.cache_ttl_seconds
        )
    return _calendar_cache


def set_calendar_cache(cache: CalendarCache) -> None:
    global _calendar_cache
    _calendar_cache = cache


def clear_calendar_cache() -> None:
    global _calendar_cache
    _calendar_cache = None
