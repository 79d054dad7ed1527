"""
Role composer: create, update and delete custom roles.

This module owns the ``roles`` table. Permissions are referenced, never written.
A role always holds at least one permission, and the acting principal can only
hand out permissions it holds itself.
"""
from typing import Iterable, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.exceptions import (
    CrossScope,
    DuplicateName,
    EmptyPermissionSet,
    Forbidden,
    NotFound,
    RoleInUse,
    UnknownPermission,
    ValidationError,
)
from bounty_rbac.features.audit.service import record_audit
from bounty_rbac.features.authorization.defaults import ROLES_MANAGE, DefaultPermissionTable
from bounty_rbac.features.authorization.service import effective_permissions, require_permission
from bounty_rbac.features.permissions.models import Permission
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.features.roles.models import Role
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Lookups
# ============================================================================

async def list_roles(db: AsyncSession, actor: Principal) -> list[Role]:
    """Roles owned by the actor's organization, by name."""
    stmt = (
        select(Role)
        .where(Role.organization_id == actor.organization_id)
        .order_by(Role.name)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_role(db: AsyncSession, actor: Principal, role_id: str, lock: bool = False) -> Role:
    """
    Load a role of the actor's organization.
    
    With ``lock`` the row is held (SELECT ... FOR UPDATE) until commit so that
    permission replacement and the delete guard cannot interleave.
    """
    stmt = select(Role).where(Role.id == role_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    role = result.scalar_one_or_none()

    if role is None:
        raise NotFound("Role not found")
    if role.organization_id != actor.organization_id:
        raise CrossScope("Role belongs to a different organization")
    return role


async def _reload_role(db: AsyncSession, role_id: str) -> Role:
    """Re-read a role and its permissions after commit."""
    stmt = select(Role).where(Role.id == role_id).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one()


async def count_role_members(db: AsyncSession, role_id: str) -> int:
    """Number of principals currently bound to a role."""
    stmt = select(func.count()).select_from(Principal).where(Principal.custom_role_id == role_id)
    return await db.scalar(stmt) or 0


# ============================================================================
# Validation
# ============================================================================

def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Role name is required")
    return name


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


async def _ensure_unique_name(
    db: AsyncSession,
    organization_id: str,
    name: str,
    exclude_role_id: Optional[str] = None,
) -> None:
    stmt = select(Role.id).where(
        Role.organization_id == organization_id,
        func.lower(Role.name) == name.lower(),
    )
    if exclude_role_id:
        stmt = stmt.where(Role.id != exclude_role_id)
    result = await db.execute(stmt)
    if result.first() is not None:
        raise DuplicateName(f"A role named '{name}' already exists")


async def _resolve_permissions(
    db: AsyncSession,
    actor: Principal,
    permission_ids: Iterable[str],
    defaults: Optional[DefaultPermissionTable],
) -> list[Permission]:
    """
    Turn requested ids into Permission rows.
    
    Raises:
        EmptyPermissionSet: If no ids are given
        UnknownPermission: If any id does not exist
        Forbidden: If the actor does not hold every requested permission
    """
    ids = list(dict.fromkeys(pid for pid in permission_ids if pid))
    if not ids:
        raise EmptyPermissionSet()

    result = await db.execute(select(Permission).where(Permission.id.in_(ids)))
    found = {p.id: p for p in result.scalars().all()}
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise UnknownPermission(missing)

    permissions = [found[pid] for pid in ids]
    effective = await effective_permissions(db, actor, defaults)
    if not effective.covers(p.key for p in permissions):
        raise Forbidden("Unauthorized permission assignment detected")
    return permissions


# ============================================================================
# Mutations
# ============================================================================

async def create_role(
    db: AsyncSession,
    actor: Principal,
    name: str,
    description: Optional[str] = None,
    permission_ids: Iterable[str] = (),
    defaults: Optional[DefaultPermissionTable] = None,
) -> Role:
    """Create a role in the actor's organization."""
    await require_permission(db, actor, ROLES_MANAGE, defaults)

    name = _clean_name(name)
    permissions = await _resolve_permissions(db, actor, permission_ids, defaults)
    await _ensure_unique_name(db, actor.organization_id, name)

    role = Role(
        name=name,
        description=_clean_description(description),
        organization_id=actor.organization_id,
        created_by_id=actor.id,
        permissions=permissions,
    )
    db.add(role)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateName(f"A role named '{name}' already exists")

    record_audit(
        db, actor, "create", "role", role.id,
        details={"name": name, "permission_keys": sorted(p.key for p in permissions)},
    )
    await db.commit()
    role = await _reload_role(db, role.id)

    log.info(f"Role {role.id} ({name!r}) created with {len(permissions)} permissions")
    return role


async def update_role(
    db: AsyncSession,
    actor: Principal,
    role_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    permission_ids: Optional[Iterable[str]] = None,
    defaults: Optional[DefaultPermissionTable] = None,
) -> Role:
    """
    Partially update a role.
    
    Fields left as None are unchanged; an empty ``description`` clears it.
    ``permission_ids``, when given, replaces the whole permission set.
    """
    await require_permission(db, actor, ROLES_MANAGE, defaults)

    role = await get_role(db, actor, role_id, lock=True)
    changes: dict = {}

    if name is not None:
        name = _clean_name(name)
        if name != role.name:
            await _ensure_unique_name(db, role.organization_id, name, exclude_role_id=role.id)
            changes["name"] = name

    if description is not None:
        changes["description"] = _clean_description(description)

    permissions = None
    if permission_ids is not None:
        permissions = await _resolve_permissions(db, actor, permission_ids, defaults)

    for attr, value in changes.items():
        setattr(role, attr, value)
    if permissions is not None:
        role.permissions = permissions
        changes["permission_keys"] = sorted(p.key for p in permissions)

    if "name" in changes:
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateName(f"A role named '{changes['name']}' already exists")

    record_audit(db, actor, "update", "role", role.id, details=changes)
    await db.commit()
    role = await _reload_role(db, role.id)
    return role


async def delete_role(
    db: AsyncSession,
    actor: Principal,
    role_id: str,
    defaults: Optional[DefaultPermissionTable] = None,
) -> None:
    """
    Delete a role nobody is bound to.
    
    The in-use count is taken while the role row is locked, in the same
    transaction as the delete.
    """
    await require_permission(db, actor, ROLES_MANAGE, defaults)

    role = await get_role(db, actor, role_id, lock=True)
    members = await count_role_members(db, role.id)
    if members:
        raise RoleInUse(members)

    role_name = role.name
    await db.delete(role)

    record_audit(db, actor, "delete", "role", role_id, details={"name": role_name})
    await db.commit()

    log.info(f"Role {role_id} ({role_name!r}) deleted")
