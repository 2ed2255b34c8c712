"""Typed failures raised by the core and rendered by the web API.

Every error carries the HTTP status the API answers with, so routes never
have to translate them by hand.
"""


class EventServiceError(Exception):
    """Base class for all expected failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EventServiceError):
    """Bad input shape or content."""

    status_code = 400


class EventNotFoundError(EventServiceError):
    """Unknown event id."""

    status_code = 404


class CapacityError(EventServiceError):
    """The event already has as many attendees as its limit allows."""

    status_code = 400


class AdminAuthError(EventServiceError):
    """Missing or wrong admin key."""

    status_code = 401


class ConfigError(EventServiceError):
    """Configuration is missing or malformed."""

    status_code = 500


class UpstreamFetchError(EventServiceError):
    """A calendar feed could not be retrieved or read.

    Never shown to users: the fetcher logs it and carries on with the other
    calendars.
    """

    status_code = 502


class PersistenceError(EventServiceError):
    """The database failed; the surrounding transaction was rolled back."""

    status_code = 500
