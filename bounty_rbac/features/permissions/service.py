"""
Permission registry: the catalog of atomic capabilities.

Deleting a permission is blocked while any role still includes it; operators
remove it from those roles first.
"""
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.exceptions import DuplicateKey, NotFound, PermissionInUse, ValidationError
from bounty_rbac.features.audit.service import record_audit
from bounty_rbac.features.authorization.defaults import PERMISSIONS_MANAGE, DefaultPermissionTable
from bounty_rbac.features.authorization.service import require_permission
from bounty_rbac.features.permissions.keys import derive_category, validate_key
from bounty_rbac.features.permissions.models import Permission, role_permissions
from bounty_rbac.features.principals.models import Principal
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


async def list_permissions(
    db: AsyncSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Permission]:
    """
    List permissions, optionally filtered.
    
    Args:
        category: Exact category, compared case-insensitively
        search: Substring of the name or key, compared case-insensitively
    """
    stmt = select(Permission)

    if category and category.strip():
        stmt = stmt.where(func.lower(Permission.category) == category.strip().lower())
    if search and search.strip():
        needle = search.strip().lower()
        stmt = stmt.where(
            or_(
                Permission.name.icontains(needle, autoescape=True),
                Permission.key.contains(needle, autoescape=True),
            )
        )

    stmt = stmt.order_by(Permission.category, Permission.key)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_permission(db: AsyncSession, permission_id: str) -> Permission:
    result = await db.execute(select(Permission).where(Permission.id == permission_id))
    permission = result.scalars().first()

    if not permission:
        raise NotFound("Permission not found")
    return permission


async def create_permission(
    db: AsyncSession,
    actor: Principal,
    key: str,
    name: str,
    description: Optional[str] = None,
    category: Optional[str] = None,
    defaults: Optional[DefaultPermissionTable] = None,
) -> Permission:
    """
    Register a new permission.
    
    Key and category are stored lower-cased; ``category`` defaults to the key prefix.
    
    Raises:
        InvalidKey: If the key is empty or not of the form category:action
        DuplicateKey: If the key already exists (case-insensitive)
    """
    await require_permission(db, actor, PERMISSIONS_MANAGE, defaults)

    normalized = validate_key(key)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Permission name is required")

    existing = await db.execute(select(Permission.id).where(Permission.key == normalized))
    if existing.first() is not None:
        raise DuplicateKey(f"Permission key '{normalized}' already exists")

    permission = Permission(
        key=normalized,
        name=name,
        description=(description or "").strip() or None,
        category=(category or "").strip().lower() or derive_category(normalized),
    )
    db.add(permission)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateKey(f"Permission key '{normalized}' already exists")

    record_audit(
        db, actor, "create", "permission", permission.id,
        details={"key": normalized, "category": permission.category},
    )
    await db.commit()
    await db.refresh(permission)

    log.info(f"Permission {normalized} registered")
    return permission


async def count_permission_roles(db: AsyncSession, permission_id: str) -> int:
    """Number of roles that include a permission."""
    stmt = (
        select(func.count())
        .select_from(role_permissions)
        .where(role_permissions.c.permission_id == permission_id)
    )
    return await db.scalar(stmt) or 0


async def delete_permission(
    db: AsyncSession,
    actor: Principal,
    permission_id: str,
    defaults: Optional[DefaultPermissionTable] = None,
) -> None:
    """
    Remove a permission from the catalog.
    
    Raises:
        PermissionInUse: If any role still includes it
    """
    await require_permission(db, actor, PERMISSIONS_MANAGE, defaults)

    stmt = select(Permission).where(Permission.id == permission_id).with_for_update()
    result = await db.execute(stmt)
    permission = result.scalars().first()
    if not permission:
        raise NotFound("Permission not found")

    roles = await count_permission_roles(db, permission.id)
    if roles:
        raise PermissionInUse(roles)

    key = permission.key
    await db.delete(permission)

    record_audit(db, actor, "delete", "permission", permission_id, details={"key": key})
    await db.commit()

    log.info(f"Permission {key} deleted")
