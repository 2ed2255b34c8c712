"""
Backend entry point.

One Python process, one asyncio event loop. FastAPI serves the REST API
under /api and the realtime WebSocket at /. Calendar syncing happens on
demand when events are listed, so there are no background tasks.

Run with: python main.py [--port PORT]
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import (
    check_required_env_vars,
    get_allowed_origins,
    get_api_port,
    get_app_config,
)
from core.database import close_engine, create_schema
from web_api.errors import register_exception_handlers
from web_api.routes.donations import router as donations_router
from web_api.routes.events import router as events_router
from web_api.routes.meta import router as meta_router
from web_api.routes.realtime import router as realtime_router
from web_api.routes.rsvp import router as rsvp_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SENTRY_DSN = os.environ.get("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=os.environ.get("ENVIRONMENT", "development"),
        traces_sample_rate=0.1,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Validates the environment and the application config before serving,
    so a broken config stops the server at startup instead of on the first
    request.
    """
    ok, messages = check_required_env_vars()
    for message in messages:
        logger.warning(f"Environment check:{message}")
    if not ok:
        raise RuntimeError("Required environment variables are missing")

    config = get_app_config()
    enabled = sum(1 for calendar in config.calendars if calendar.enabled)
    logger.info(
        f"Loaded config: {enabled}/{len(config.calendars)} calendars enabled, "
        f"autoFetch={config.events.auto_fetch}"
    )

    if os.environ.get("DB_AUTO_CREATE_SCHEMA", "").lower() in ("true", "1", "yes"):
        logger.info("Creating database schema")
        await create_schema()

    yield

    logger.info("Shutting down...")
    await close_engine()


app = FastAPI(
    title="Event RSVP API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(events_router)
app.include_router(rsvp_router)
app.include_router(donations_router)
app.include_router(meta_router)
app.include_router(realtime_router)


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Event RSVP Server")
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
