"""
Centralized configuration for the event RSVP service.

Two sources:
- environment variables (ports, secrets, database URL), read on demand
- the application config file (calendars and event settings), parsed once
  into frozen dataclasses and validated up front
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .enums import TimeRange
from .exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "app.json"
DEFAULT_CACHE_TTL_SECONDS = 300  # 5 minutes


def is_production() -> bool:
    """Check if running in production (ENVIRONMENT=production)."""
    return os.environ.get("ENVIRONMENT", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_allowed_origins() -> list[str]:
    """Get list of allowed CORS origins."""
    hosts = ["localhost", "127.0.0.1"]
    origins = [f"http://{host}:{get_api_port()}" for host in hosts]

    env_frontend = os.environ.get("FRONTEND_URL")
    if env_frontend and env_frontend not in origins:
        origins.append(env_frontend.rstrip("/"))

    return origins


def get_calendar_fetch_timeout() -> float:
    """Seconds to wait for a single calendar feed."""
    return float(os.getenv("CALENDAR_FETCH_TIMEOUT", "10"))


def get_admin_api_key() -> str | None:
    """Shared secret for admin-only endpoints."""
    return os.environ.get("ADMIN_API_KEY") or None


# Required environment variables
# Format: (name, description)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string"),
    ("ADMIN_API_KEY", "Shared secret for admin endpoints"),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages.
        Missing variables are errors in production and warnings elsewhere.
    """
    warnings = []
    errors = []

    for name, description in REQUIRED_ENV_VARS:
        if not os.environ.get(name):
            message = f"  {name}: Not set ({description})"
            if is_production():
                errors.append(message)
            else:
                warnings.append(message)

    return not errors, errors + warnings


# =====================================================
# Application config file
# =====================================================


@dataclass(frozen=True)
class CalendarSource:
    """One public Google Calendar to pull events from."""

    url: str
    enabled: bool = True
    name: str = ""


@dataclass(frozen=True)
class EventsConfig:
    auto_fetch: bool
    default_time_range: TimeRange
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS


@dataclass(frozen=True)
class AppConfig:
    calendars: tuple[CalendarSource, ...]
    events: EventsConfig

    @classmethod
    def from_dict(cls, data: Any) -> "AppConfig":
        """
        Build a config from the parsed JSON document.

        Raises:
            ConfigError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ConfigError("Config root must be an object")

        raw_calendars = _require(data, "calendars", list, "calendars")
        calendars = tuple(
            _parse_calendar(entry, index) for index, entry in enumerate(raw_calendars)
        )

        raw_events = _require(data, "events", dict, "events")
        auto_fetch = _require(raw_events, "autoFetch", bool, "events.autoFetch")
        time_range = _require(
            raw_events, "defaultTimeRange", str, "events.defaultTimeRange"
        )
        try:
            default_time_range = TimeRange(time_range)
        except ValueError:
            raise ConfigError(
                f"events.defaultTimeRange must be one of "
                f"{[r.value for r in TimeRange]}, got {time_range!r}"
            )

        ttl = raw_events.get("cacheTtlSeconds", DEFAULT_CACHE_TTL_SECONDS)
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0:
            raise ConfigError("events.cacheTtlSeconds must be a non-negative integer")

        return cls(
            calendars=calendars,
            events=EventsConfig(
                auto_fetch=auto_fetch,
                default_time_range=default_time_range,
                cache_ttl_seconds=ttl,
            ),
        )

    def to_public_dict(self) -> dict:
        """Config as served to the browser (no secrets live here)."""
        return {
            "calendars": [
                {"url": c.url, "enabled": c.enabled, "name": c.name}
                for c in self.calendars
            ],
            "events": {
                "autoFetch": self.events.auto_fetch,
                "defaultTimeRange": self.events.default_time_range.value,
                "cacheTtlSeconds": self.events.cache_ttl_seconds,
            },
        }


def _require(data: dict, key: str, expected: type, label: str) -> Any:
    if key not in data:
        raise ConfigError(f"Missing required config field: {label}")
    value = data[key]
    if not isinstance(value, expected):
        raise ConfigError(f"Config field {label} must be {expected.__name__}")
    return value


def _parse_calendar(entry: Any, index: int) -> CalendarSource:
    label = f"calendars[{index}]"
    if not isinstance(entry, dict):
        raise ConfigError(f"{label} must be an object")
    url = _require(entry, "url", str, f"{label}.url")
    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"Config field {label}.enabled must be bool")
    name = entry.get("name") or ""
    return CalendarSource(url=url, enabled=enabled, name=str(name))


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """
    Read and validate the application config file.

    Path resolution: explicit argument, then APP_CONFIG_PATH, then
    config/app.json next to the project root.

    Raises:
        ConfigError: If the file is missing, not JSON, or incomplete.
    """
    config_path = Path(path or os.environ.get("APP_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}")

    return AppConfig.from_dict(data)


# Global config singleton
_app_config: AppConfig | None = None


def get_app_config() -> AppConfig:
    """Get the loaded config, loading it on first use."""
    global _app_config
    if _app_config is None:
        _app_config = load_app_config()
    return _app_config


def set_app_config(config: AppConfig) -> None:
    """Set the config (used at startup and by tests)."""
    global _app_config
    _app_config = config


def clear_app_config() -> None:
    """Forget the loaded config (used by tests)."""
    global _app_config
    _app_config = None
