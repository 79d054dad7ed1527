"""
Organization routes.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.authorization.defaults import DefaultPermissionTable, get_default_permission_table
from bounty_rbac.features.organizations import service
from bounty_rbac.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationCreated,
    OrganizationResponse,
)
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.principals.schemas import PrincipalResponse


router = APIRouter(tags=["organizations"])


@router.post("", response_model=OrganizationCreated, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
):
    """Create an organization with its owner (requires organizations:manage)."""
    organization, owner = await service.create_organization(
        db,
        current,
        name=body.name,
        owner_first_name=body.owner.first_name,
        owner_last_name=body.owner.last_name,
        owner_email=body.owner.email,
        owner_account_type=body.owner.account_type,
        defaults=defaults,
    )
    return OrganizationCreated(
        organization=OrganizationResponse.model_validate(organization),
        owner=PrincipalResponse.model_validate(owner),
    )


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """List all organizations (requires organizations:manage)."""
    return await service.list_organizations(db, current, skip, limit, defaults)


@router.get("/current", response_model=OrganizationResponse)
async def get_current_organization(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
):
    """Get the caller's organization."""
    return await service.get_organization(db, current.organization_id)
