"""
FastAPI dependencies resolving the acting principal.
"""
from typing import Annotated, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.core.exceptions import Forbidden, Unauthorized
from bounty_rbac.features.principals.auth import decode_access_token
from bounty_rbac.features.principals.models import Principal


security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Principal:
    """
    Get the acting principal from the bearer token.
    
    Usage:
        @router.get("/me")
        async def get_me(current: Principal = Depends(get_current_principal)):
            return current
    """
    if credentials is None:
        raise Unauthorized("Not authorized to access this route")

    principal_id = decode_access_token(credentials.credentials)

    result = await db.execute(select(Principal).where(Principal.id == principal_id))
    principal = result.scalar_one_or_none()

    if principal is None:
        raise Unauthorized("Account does not exist")

    if not principal.is_active:
        raise Forbidden("Account is deactivated")

    return principal
