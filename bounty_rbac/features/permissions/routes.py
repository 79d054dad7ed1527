"""
Permission registry API routes.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.authorization.defaults import DefaultPermissionTable, get_default_permission_table
from bounty_rbac.features.authorization.service import effective_permissions
from bounty_rbac.features.permissions import service
from bounty_rbac.features.permissions.schemas import (
    PermissionCategoryGroup,
    PermissionCreate,
    PermissionResponse,
)
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.roles.composer import group_by_category


router = APIRouter(tags=["permissions"])


async def _visible_permissions(
    db: AsyncSession,
    current: Principal,
    defaults: DefaultPermissionTable,
    category: Optional[str],
    search: Optional[str],
    grantable: bool,
):
    permissions = await service.list_permissions(db, category=category, search=search)
    if grantable:
        effective = await effective_permissions(db, current, defaults)
        permissions = [p for p in permissions if effective.allows(p.key)]
    return permissions


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
    category: Optional[str] = None,
    search: Optional[str] = None,
    grantable: bool = False,
):
    """
    List permissions with optional filtering.
    
    With ``grantable=true`` only permissions the caller could put into a role are returned.
    """
    return await _visible_permissions(db, current, defaults, category, search, grantable)


@router.get("/grouped", response_model=List[PermissionCategoryGroup])
async def list_permissions_grouped(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
    search: Optional[str] = None,
    grantable: bool = False,
):
    """Permissions grouped by category for the role editor."""
    permissions = await _visible_permissions(db, current, defaults, None, search, grantable)
    return [
        PermissionCategoryGroup(
            category=category,
            permissions=[PermissionResponse.model_validate(p) for p in members],
        )
        for category, members in group_by_category(permissions).items()
    ]


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
):
    """Get a specific permission by ID."""
    return await service.get_permission(db, permission_id)


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission: PermissionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Register a new permission (requires permissions:manage)."""
    return await service.create_permission(
        db,
        current,
        key=permission.key,
        name=permission.name,
        description=permission.description,
        category=permission.category,
        defaults=defaults,
    )


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Delete a permission no role uses (requires permissions:manage)."""
    await service.delete_permission(db, current, permission_id, defaults)
    return None
