"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, insert

from core import database
from core.calendar import clear_calendar_cache
from core.config import clear_app_config
from core.tables import metadata

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Every test starts without a loaded config or a warm calendar cache."""
    clear_app_config()
    clear_calendar_cache()
    yield
    clear_app_config()
    clear_calendar_cache()


@pytest.fixture
def sqlite_database(tmp_path, monkeypatch):
    """
    Point DATABASE_URL at a fresh SQLite file with every table created.

    The async engine singleton is reset so the next get_engine() call
    connects to this file.
    """
    db_path = tmp_path / "events.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    metadata.create_all(sync_engine)
    sync_engine.dispose()

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setattr(database, "_engine", None)
    yield db_path


@pytest.fixture
def insert_rows(sqlite_database):
    """Seed tables synchronously: insert_rows(events, [{...}, ...])."""
    engine = create_engine(f"sqlite:///{sqlite_database}")

    def _insert(table, rows):
        with engine.begin() as conn:
            for row in rows:
                conn.execute(insert(table).values(**row))

    yield _insert
    engine.dispose()
