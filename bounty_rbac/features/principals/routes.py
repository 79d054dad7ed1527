"""
Principal (team member) routes: membership, role binding and bulk operations.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core import config
from bounty_rbac.core.database.engine import get_db
from bounty_rbac.core.rate_limit import limiter
from bounty_rbac.features.authorization.defaults import (
    MEMBERS_MANAGE,
    DefaultPermissionTable,
    get_default_permission_table,
)
from bounty_rbac.features.authorization.dependencies import permission_required
from bounty_rbac.features.principals import service
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.principals.schemas import (
    BulkResultResponse,
    BulkRoleAssignment,
    BulkStatusUpdate,
    PrincipalCreate,
    PrincipalResponse,
    RoleAssignment,
)


router = APIRouter(tags=["principals"])


@router.get("", response_model=List[PrincipalResponse])
async def list_principals(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(permission_required(MEMBERS_MANAGE))],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    is_active: Optional[bool] = None,
):
    """List members of the caller's organization (requires members:manage)."""
    return await service.list_principals(db, current, skip, limit, is_active)


@router.get("/me", response_model=PrincipalResponse)
async def get_me(
    current: Annotated[Principal, Depends(get_current_principal)],
):
    """Get the calling principal."""
    return current


@router.post("", response_model=PrincipalResponse, status_code=status.HTTP_201_CREATED)
async def create_principal(
    body: PrincipalCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Add a team member to the caller's organization (requires members:manage)."""
    return await service.create_principal(
        db,
        current,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        custom_role_id=body.custom_role_id,
        defaults=defaults,
    )


# Bulk routes are declared before /{principal_id} routes so "bulk" is never taken as an id
@router.patch("/bulk/role", response_model=BulkResultResponse)
@limiter.limit(config.BULK_RATE_LIMIT)
async def bulk_assign_role(
    request: Request,
    body: BulkRoleAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Bind several principals to one role, or revert them with roleId null."""
    return await service.bulk_assign_role(db, current, body.principal_ids, body.role_id, defaults)


@router.patch("/bulk/status", response_model=BulkResultResponse)
@limiter.limit(config.BULK_RATE_LIMIT)
async def bulk_toggle_status(
    request: Request,
    body: BulkStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Activate or deactivate several principals."""
    return await service.bulk_toggle_active(db, current, body.principal_ids, body.is_active, defaults)


@router.get("/{principal_id}", response_model=PrincipalResponse)
async def get_principal(
    principal_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(permission_required(MEMBERS_MANAGE))],
):
    """Get a member of the caller's organization."""
    return await service.get_principal(db, current, principal_id)


@router.patch("/{principal_id}/role", response_model=PrincipalResponse)
async def assign_role(
    principal_id: str,
    body: RoleAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Bind a principal to a role; roleId null reverts to the account default."""
    return await service.assign_role(db, current, principal_id, body.role_id, defaults)


@router.delete("/{principal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_principal(
    principal_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Remove a member; the role it was bound to is kept."""
    await service.delete_principal(db, current, principal_id, defaults)
    return None
