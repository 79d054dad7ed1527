"""
Shared slowapi limiter.

Keyed on the Authorization header so each caller gets its own budget.
"""
from slowapi import Limiter
from starlette.requests import Request

from bounty_rbac.core import config


def get_authorization_header(request: Request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"


limiter = Limiter(key_func=get_authorization_header, enabled=config.RATE_LIMIT_ENABLED)
