"""
Service metadata routes.

Endpoints:
- GET /api/config - Public application configuration
- GET /api/health - Liveness check
"""

from typing import Any

from fastapi import APIRouter, Depends

from core.config import AppConfig, get_app_config
from core.timezone import format_utc_timestamp, utc_now

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/config")
async def get_public_config(
    config: AppConfig = Depends(get_app_config),
) -> dict[str, Any]:
    return config.to_public_dict()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "OK", "timestamp": format_utc_timestamp(utc_now())}
