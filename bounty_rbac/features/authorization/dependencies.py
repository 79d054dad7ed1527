"""
FastAPI dependencies guarding routes by permission key.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.authorization.defaults import DefaultPermissionTable, get_default_permission_table
from bounty_rbac.features.authorization.service import require_permission
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal


def permission_required(key: str):
    """
    FastAPI dependency to require a specific permission.
    
    Usage:
        @router.get("/programs")
        async def list_programs(
            current: Principal = Depends(permission_required("company:programs"))
        ):
            # Caller holds company:programs
            pass
    
    Returns:
        Dependency function that returns the current principal if it holds ``key``
    
    Raises:
        Forbidden: 403 if the principal does not hold ``key``
    """
    async def permission_dependency(
        db: Annotated[AsyncSession, Depends(get_db)],
        current: Annotated[Principal, Depends(get_current_principal)],
        defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
    ) -> Principal:
        await require_permission(db, current, key, defaults)
        return current

    return permission_dependency
