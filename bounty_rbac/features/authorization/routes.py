"""
Authorization introspection routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.authorization.defaults import (
    DEFAULT_LABELS,
    DefaultPermissionTable,
    get_default_permission_table,
)
from bounty_rbac.features.authorization.schemas import (
    EffectivePermissionsResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from bounty_rbac.features.authorization.service import effective_permissions, has_permission
from bounty_rbac.features.permissions.keys import normalize_key
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.roles.models import Role


router = APIRouter(tags=["authorization"])


@router.get("/me", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Resolve the caller's effective permission set."""
    effective = await effective_permissions(db, current, defaults)
    if effective.role_id:
        role = await db.get(Role, effective.role_id)
        label = role.name if role else None
    else:
        label = DEFAULT_LABELS.get(current.account_type)
    return EffectivePermissionsResponse(
        principal_id=current.id,
        source=effective.source,
        role_id=effective.role_id,
        label=label,
        keys=sorted(effective.keys),
        patterns=list(effective.patterns),
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    body: PermissionCheckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Check whether the caller holds a permission."""
    key = normalize_key(body.key)
    granted = await has_permission(db, current, key, defaults)
    if granted:
        reason = "Granted by custom role" if current.custom_role_id else "Granted by account default"
    else:
        reason = f"You do not have the required permission: {key}"
    return PermissionCheckResponse(has_permission=granted, reason=reason)
