"""
Bearer token helpers identifying the acting principal.

Token issuance and login flows belong to the identity service; this module only
signs and verifies the short JWTs carrying a principal id in ``sub``.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt

from bounty_rbac.core import config
from bounty_rbac.core.exceptions import Unauthorized


def create_access_token(principal_id: str, expires_minutes: Optional[int] = None) -> str:
    """Sign a token for ``principal_id``."""
    minutes = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_EXPIRE_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": principal_id,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a token and return the principal id it carries.
    
    Raises:
        Unauthorized: If the token is invalid, expired, or has no subject
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise Unauthorized(f"Invalid token: {str(e)}")

    principal_id = payload.get("sub")
    if not principal_id:
        raise Unauthorized("Invalid token payload")
    return principal_id
