"""
Shared-secret authentication for admin endpoints.

Admin requests carry the secret from ADMIN_API_KEY in the X-Admin-Key
header. There are no user accounts.
"""

import hmac
import logging

from fastapi import Header

from core.config import get_admin_api_key
from core.exceptions import AdminAuthError, ConfigError

logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "X-Admin-Key"


async def require_admin_key(
    x_admin_key: str | None = Header(default=None, alias=ADMIN_KEY_HEADER),
) -> None:
    """
    FastAPI dependency that rejects requests without the admin key.

    Raises:
        ConfigError: If ADMIN_API_KEY is not configured (500)
        AdminAuthError: If the header is missing or wrong (401)
    """
    admin_key = get_admin_api_key()
    if not admin_key:
        logger.error("ADMIN_API_KEY not configured in environment variables")
        raise ConfigError("Server configuration error")

    if not x_admin_key or not hmac.compare_digest(
        x_admin_key.encode("utf-8"), admin_key.encode("utf-8")
    ):
        raise AdminAuthError("Unauthorized: Invalid admin key")
