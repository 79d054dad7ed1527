"""
Principal-role binding and bulk principal operations.

This module owns the ``principals`` table, including ``custom_role_id``. Roles
are only read here: the role row is locked while a binding is written so that a
concurrent role deletion re-checks its in-use guard against the new binding.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core import config
from bounty_rbac.core.exceptions import (
    BatchTooLarge,
    CrossScope,
    DuplicateEmail,
    NotFound,
    ValidationError,
)
from bounty_rbac.features.audit.service import record_audit
from bounty_rbac.features.authorization.defaults import MEMBERS_MANAGE, DefaultPermissionTable
from bounty_rbac.features.authorization.service import require_permission
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.roles.models import Role
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


@dataclass
class BulkFailure:
    id: str
    reason: str


@dataclass
class BulkResult:
    updated_count: int = 0
    failed: list[BulkFailure] = field(default_factory=list)


# ============================================================================
# Lookups
# ============================================================================

async def get_principal(db: AsyncSession, actor: Principal, principal_id: str) -> Principal:
    """Load a principal of the actor's organization."""
    result = await db.execute(select(Principal).where(Principal.id == principal_id))
    principal = result.scalar_one_or_none()

    if principal is None:
        raise NotFound("Principal not found")
    if principal.organization_id != actor.organization_id:
        raise CrossScope("Principal belongs to a different organization")
    return principal


async def list_principals(
    db: AsyncSession,
    actor: Principal,
    skip: int = 0,
    limit: int = 50,
    is_active: Optional[bool] = None,
) -> list[Principal]:
    """List the members of the actor's organization, newest first."""
    stmt = select(Principal).where(Principal.organization_id == actor.organization_id)
    if is_active is not None:
        stmt = stmt.where(Principal.is_active == is_active)
    stmt = stmt.order_by(Principal.created_at.desc(), Principal.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def load_bindable_role(db: AsyncSession, role_id: str, organization_id: str) -> Role:
    """
    Load and lock a role for binding to principals of ``organization_id``.
    
    Raises:
        NotFound: If the role does not exist
        CrossScope: If the role belongs to another organization
    """
    stmt = select(Role).where(Role.id == role_id).with_for_update()
    result = await db.execute(stmt)
    role = result.scalar_one_or_none()

    if role is None:
        raise NotFound("Role not found")
    if role.organization_id != organization_id:
        raise CrossScope("Role belongs to a different organization")
    return role


def _normalize_batch(principal_ids: Iterable[str], max_batch_size: Optional[int]) -> list[str]:
    """Drop duplicate ids (keeping order) and enforce the batch bound."""
    limit = max_batch_size if max_batch_size is not None else config.BULK_MAX_BATCH_SIZE
    ids = list(dict.fromkeys(pid for pid in principal_ids if pid))
    if len(ids) > limit:
        raise BatchTooLarge(f"At most {limit} principals can be updated at once")
    return ids


async def _load_batch(db: AsyncSession, ids: list[str]) -> dict[str, Principal]:
    if not ids:
        return {}
    result = await db.execute(select(Principal).where(Principal.id.in_(ids)))
    return {p.id: p for p in result.scalars().all()}


# ============================================================================
# Lifecycle
# ============================================================================

async def create_principal(
    db: AsyncSession,
    actor: Principal,
    first_name: str,
    last_name: str,
    email: str,
    custom_role_id: Optional[str] = None,
    defaults: Optional[DefaultPermissionTable] = None,
) -> Principal:
    """
    Add a team member to the actor's organization.
    
    The new principal inherits the actor's account type.
    """
    await require_permission(db, actor, MEMBERS_MANAGE, defaults)

    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationError("First and last name are required")

    email = (email or "").strip().lower()
    existing = await db.execute(select(Principal.id).where(Principal.email == email))
    if existing.first() is not None:
        raise DuplicateEmail("Email already in use")

    if custom_role_id:
        await load_bindable_role(db, custom_role_id, actor.organization_id)

    principal = Principal(
        first_name=first_name,
        last_name=last_name,
        email=email,
        account_type=actor.account_type,
        organization_id=actor.organization_id,
        custom_role_id=custom_role_id or None,
        is_active=True,
    )
    db.add(principal)
    await db.flush()

    record_audit(
        db, actor, "create", "principal", principal.id,
        details={"email": email, "custom_role_id": principal.custom_role_id},
    )
    await db.commit()
    await db.refresh(principal)
    return principal


async def delete_principal(
    db: AsyncSession,
    actor: Principal,
    principal_id: str,
    defaults: Optional[DefaultPermissionTable] = None,
) -> None:
    """Hard-delete a principal; its binding goes with it, the role stays."""
    await require_permission(db, actor, MEMBERS_MANAGE, defaults)

    if principal_id == actor.id:
        raise ValidationError("Cannot delete your own account")

    principal = await get_principal(db, actor, principal_id)
    details = {"email": principal.email, "custom_role_id": principal.custom_role_id}
    await db.delete(principal)

    record_audit(db, actor, "delete", "principal", principal_id, details=details)
    await db.commit()


# ============================================================================
# Binding
# ============================================================================

async def assign_role(
    db: AsyncSession,
    actor: Principal,
    principal_id: str,
    role_id: Optional[str],
    defaults: Optional[DefaultPermissionTable] = None,
) -> Principal:
    """
    Bind a principal to a role, or revert it to its account-type default
    when ``role_id`` is None.
    """
    await require_permission(db, actor, MEMBERS_MANAGE, defaults)

    principal = await get_principal(db, actor, principal_id)
    if role_id:
        await load_bindable_role(db, role_id, principal.organization_id)

    previous = principal.custom_role_id
    principal.custom_role_id = role_id or None

    record_audit(
        db, actor, "assign_role", "principal", principal.id,
        details={"previous_role_id": previous, "role_id": principal.custom_role_id},
    )
    await db.commit()
    await db.refresh(principal)

    log.info(f"Principal {principal.id} bound to {principal.custom_role_id or 'account default'}")
    return principal


async def bulk_assign_role(
    db: AsyncSession,
    actor: Principal,
    principal_ids: Iterable[str],
    role_id: Optional[str],
    defaults: Optional[DefaultPermissionTable] = None,
    max_batch_size: Optional[int] = None,
) -> BulkResult:
    """
    Bind every listed principal to ``role_id`` (or to their defaults).
    
    Ids that cannot be updated are reported in ``failed``; the rest are applied.
    """
    await require_permission(db, actor, MEMBERS_MANAGE, defaults)

    ids = _normalize_batch(principal_ids, max_batch_size)
    if role_id:
        await load_bindable_role(db, role_id, actor.organization_id)

    principals = await _load_batch(db, ids)
    outcome = BulkResult()
    for pid in ids:
        principal = principals.get(pid)
        if principal is None:
            outcome.failed.append(BulkFailure(pid, "Principal not found"))
            continue
        if principal.organization_id != actor.organization_id:
            outcome.failed.append(BulkFailure(pid, "Principal belongs to a different organization"))
            continue
        principal.custom_role_id = role_id or None
        outcome.updated_count += 1

    record_audit(
        db, actor, "bulk_assign_role", "principal",
        details={
            "role_id": role_id,
            "updated_count": outcome.updated_count,
            "failed_ids": [f.id for f in outcome.failed],
        },
    )
    await db.commit()
    return outcome


async def bulk_toggle_active(
    db: AsyncSession,
    actor: Principal,
    principal_ids: Iterable[str],
    is_active: bool,
    defaults: Optional[DefaultPermissionTable] = None,
    max_batch_size: Optional[int] = None,
) -> BulkResult:
    """Set ``is_active`` on every listed principal; bindings are left untouched."""
    await require_permission(db, actor, MEMBERS_MANAGE, defaults)

    ids = _normalize_batch(principal_ids, max_batch_size)
    principals = await _load_batch(db, ids)
    outcome = BulkResult()
    for pid in ids:
        principal = principals.get(pid)
        if pid == actor.id:
            outcome.failed.append(BulkFailure(pid, "Cannot change your own status"))
            continue
        if principal is None:
            outcome.failed.append(BulkFailure(pid, "Principal not found"))
            continue
        if principal.organization_id != actor.organization_id:
            outcome.failed.append(BulkFailure(pid, "Principal belongs to a different organization"))
            continue
        principal.is_active = is_active
        outcome.updated_count += 1

    record_audit(
        db, actor, "bulk_toggle_active", "principal",
        details={
            "is_active": is_active,
            "updated_count": outcome.updated_count,
            "failed_ids": [f.id for f in outcome.failed],
        },
    )
    await db.commit()
    return outcome
