"""Access control for the admin dashboard and patient listing endpoints"""

import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import (
    APIKeyHeader,
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)

from patient_intake.config import config
from patient_intake.errors import AuthError
from patient_intake.logging_config import get_logger

# Three ways to present the same admin key; none of them fails on its own.
api_key_header = APIKeyHeader(
    name="X-Admin-Key",
    description="Admin API key for the dashboard",
    auto_error=False,
)
bearer_security = HTTPBearer(auto_error=False)
basic_security = HTTPBasic(realm="admin", auto_error=False)

logger = get_logger(__name__)


def _presented_key(
    x_admin_key: Optional[str],
    bearer: Optional[HTTPAuthorizationCredentials],
    basic: Optional[HTTPBasicCredentials],
) -> Optional[str]:
    if x_admin_key:
        return x_admin_key.strip()
    if bearer and bearer.credentials:
        return bearer.credentials.strip()
    if basic and basic.password:
        # Browsers prompt for Basic credentials; the password is the admin key.
        return basic.password
    return None


async def require_admin(
    x_admin_key: Optional[str] = Depends(api_key_header),
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_security),
    basic: Optional[HTTPBasicCredentials] = Depends(basic_security),
) -> None:
    """
    FastAPI dependency guarding admin routes.

    The admin key may be sent as an X-Admin-Key header, as a Bearer token,
    or as the password of HTTP Basic credentials (what a browser prompts for).

    Raises:
        AuthError: 403 if no admin key is configured on the server,
            401 if the key is missing or wrong
    """
    expected_key = config.get("admin_api_key")
    if not expected_key:
        logger.warning("Admin route requested but ADMIN_API_KEY is not configured")
        raise AuthError("Admin access is not configured", status_code=403)

    presented = _presented_key(x_admin_key, bearer, basic)
    if not presented:
        raise AuthError("Missing admin API key")

    if not secrets.compare_digest(presented.encode(), expected_key.encode()):
        logger.warning("Rejected admin request with an invalid API key")
        raise AuthError("Invalid admin API key")
