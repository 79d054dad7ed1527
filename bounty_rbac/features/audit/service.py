"""
Audit logging helpers.

Entries are added to the caller's session so they commit (or roll back)
together with the change they describe.
"""
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.features.audit.models import AuditLog
from bounty_rbac.features.authorization.defaults import AUDIT_VIEW, DefaultPermissionTable
from bounty_rbac.features.authorization.service import require_permission
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


def record_audit(
    db: AsyncSession,
    actor: Optional[Principal],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit log entry to the session.
    
    Args:
        db: Database session
        actor: Principal performing the action
        action: Action performed (e.g., "create", "update", "delete", "assign_role")
        resource_type: Type of resource (e.g., "role", "permission", "principal")
        resource_id: ID of the resource
        organization_id: Organization context (defaults to the actor's)
        details: Additional details
    """
    actor_id = actor.id if actor else None
    if organization_id is None and actor is not None:
        organization_id = actor.organization_id

    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        organization_id=organization_id,
        details=details,
    )
    db.add(audit_log)

    log.info(
        f"Audit: actor={actor_id} action={action} resource={resource_type}:{resource_id} org={organization_id}"
    )
    return audit_log


async def list_audit_logs(
    db: AsyncSession,
    actor: Principal,
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    defaults: Optional[DefaultPermissionTable] = None,
) -> tuple[list[AuditLog], int]:
    """Page through the actor's organization audit trail, newest first."""
    await require_permission(db, actor, AUDIT_VIEW, defaults)

    conditions = [AuditLog.organization_id == actor.organization_id]
    if action:
        conditions.append(AuditLog.action == action)

    total = await db.scalar(select(func.count()).select_from(AuditLog).where(*conditions))

    stmt = (
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total or 0
