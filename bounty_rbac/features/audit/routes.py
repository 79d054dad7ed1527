"""
Audit log API routes.
"""
from math import ceil
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db
from bounty_rbac.features.audit import service
from bounty_rbac.features.audit.schemas import AuditLogListResponse, AuditLogResponse
from bounty_rbac.features.authorization.defaults import DefaultPermissionTable, get_default_permission_table
from bounty_rbac.features.principals.dependencies import get_current_principal
from bounty_rbac.features.principals.models import Principal


router = APIRouter(tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    current: Annotated[Principal, Depends(get_current_principal)],
    defaults: Annotated[DefaultPermissionTable, Depends(get_default_permission_table)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    action: Optional[str] = None,
):
    """List audit entries of the caller's organization."""
    items, total = await service.list_audit_logs(db, current, skip, limit, action, defaults)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(item) for item in items],
        total=total,
        page=skip // limit + 1,
        page_size=limit,
        pages=ceil(total / limit) if total else 0,
    )
