"""
Custom role API routes.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.authorization.defaults import ROLES_MANAGE, DefaultPermissionTable, get_default_permission_table
from bounty_rbac.features.authorization.dependencies import permission_required
from bounty_rbac.features.permissions.service import list_permissions
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.roles import service
from bounty_rbac.features.roles.composer import category_candidates, toggle_category
from bounty_rbac.features.roles.schemas import (
    CategoryToggleRequest,
    CategoryToggleResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)


router = APIRouter(tags=["roles"])


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
):
    """List roles of the caller's organization."""
    return await service.list_roles(db, current)


@router.post("/draft/toggle-category", response_model=CategoryToggleResponse)
async def toggle_draft_category(
    body: CategoryToggleRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(permission_required(ROLES_MANAGE))],
):
    """
    Select or clear a whole category in an unsaved role draft.
    
    Only permissions matching ``search`` are touched. Nothing is persisted.
    """
    permissions = await list_permissions(db, category=body.category)
    candidates = category_candidates(permissions, body.category, body.search)
    selected = toggle_category(body.selected_permission_ids, candidates)
    return CategoryToggleResponse(
        selected_permission_ids=sorted(selected),
        category_permission_ids=candidates,
        all_selected=bool(candidates) and set(candidates) <= selected,
    )


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
):
    """Get a specific role with its permissions."""
    return await service.get_role(db, current, role_id)


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Create a role in the caller's organization (requires roles:manage)."""
    return await service.create_role(
        db,
        current,
        name=role.name,
        description=role.description,
        permission_ids=role.permission_ids,
        defaults=defaults,
    )


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_update: RoleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Update a role; a given permission list replaces the previous one."""
    update_data = role_update.model_dump(exclude_unset=True)
    return await service.update_role(db, current, role_id, defaults=defaults, **update_data)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Delete a role no principal is bound to."""
    await service.delete_role(db, current, role_id, defaults)
    return None
