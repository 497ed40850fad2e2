"""Rate limiting configuration using SlowAPI."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from portal.core.config import get_settings
from portal.core.security import PRINCIPAL_ID_HEADER


def get_caller_identifier(request: Request) -> str:
    """
    Get rate limit identifier from request.

    Priority order:
    1. Principal id forwarded by the auth gateway
    2. IP address

    Args:
        request: FastAPI request object

    Returns:
        Unique identifier string for rate limiting
    """
    principal_id = request.headers.get(PRINCIPAL_ID_HEADER)
    if principal_id:
        return f"user:{principal_id}"

    return f"ip:{get_remote_address(request)}"


_settings = get_settings()

limiter = Limiter(
    key_func=get_caller_identifier,
    storage_uri=_settings.RATE_LIMIT_STORAGE_URI,
    enabled=_settings.RATE_LIMIT_ENABLED,
)

# Power actions, batch operations, configuration changes
action_limit = limiter.limit(_settings.RATE_LIMIT_ACTIONS)

# Listings and metric queries
read_limit = limiter.limit(_settings.RATE_LIMIT_API_DEFAULT)
