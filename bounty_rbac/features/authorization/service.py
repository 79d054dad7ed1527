"""
Effective-permission resolution and authorization checks.

A principal's effective set is either every key in its bound custom role, or
the default patterns of its account type when unbound. Nothing is cached: each
check reads the current role contents from the database.
"""
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, Optional, Union

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.exceptions import Forbidden
from bounty_rbac.features.authorization.defaults import (
    DefaultPermissionTable,
    get_default_permission_table,
)
from bounty_rbac.features.permissions.keys import normalize_key
from bounty_rbac.features.permissions.models import Permission, role_permissions
from bounty_rbac.features.principals.models import AccountType, Principal
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Binding state
# ============================================================================

@dataclass(frozen=True)
class BoundRole:
    """Principal bound to a custom role."""
    role_id: str


@dataclass(frozen=True)
class AccountDefault:
    """Principal using the default permission set of its account type."""
    account_type: AccountType


Binding = Union[BoundRole, AccountDefault]


def binding_of(principal: Principal) -> Binding:
    if principal.custom_role_id:
        return BoundRole(principal.custom_role_id)
    return AccountDefault(AccountType(principal.account_type))


@dataclass(frozen=True)
class EffectivePermissions:
    """Resolved permission set of one principal at one point in time."""
    source: str  # "role", "default" or "inactive"
    keys: frozenset[str] = frozenset()
    patterns: tuple[str, ...] = ()
    role_id: Optional[str] = None

    def allows(self, key: str) -> bool:
        key = normalize_key(key)
        if key in self.keys:
            return True
        return any(fnmatchcase(key, pattern) for pattern in self.patterns)

    def covers(self, keys: Iterable[str]) -> bool:
        return all(self.allows(key) for key in keys)


INACTIVE = EffectivePermissions(source="inactive")


# ============================================================================
# Resolution
# ============================================================================

async def _role_keys(db: AsyncSession, role_id: str) -> frozenset[str]:
    stmt = (
        select(Permission.key)
        .join(role_permissions, role_permissions.c.permission_id == Permission.id)
        .where(role_permissions.c.role_id == role_id)
    )
    result = await db.execute(stmt)
    return frozenset(result.scalars().all())


async def effective_permissions(
    db: AsyncSession,
    principal: Principal,
    defaults: Optional[DefaultPermissionTable] = None,
) -> EffectivePermissions:
    """
    Resolve the effective permission set of a principal.
    
    For unbound principals the concrete keys are the catalog entries matching the
    account-type patterns; the patterns themselves are kept so keys added to the
    catalog later are covered too.
    """
    if not principal.is_active:
        return INACTIVE

    binding = binding_of(principal)
    if isinstance(binding, BoundRole):
        keys = await _role_keys(db, binding.role_id)
        return EffectivePermissions(source="role", keys=keys, role_id=binding.role_id)

    defaults = defaults or get_default_permission_table()
    patterns = defaults.patterns_for(binding.account_type)
    result = await db.execute(select(Permission.key))
    catalog = result.scalars().all()
    keys = frozenset(
        key for key in catalog if any(fnmatchcase(key, pattern) for pattern in patterns)
    )
    return EffectivePermissions(source="default", keys=keys, patterns=patterns)


async def has_permission(
    db: AsyncSession,
    principal: Optional[Principal],
    key: str,
    defaults: Optional[DefaultPermissionTable] = None,
) -> bool:
    """
    Check whether a principal may perform an action guarded by ``key``.
    
    Deactivated principals are denied every key regardless of their role.
    """
    if principal is None:
        return False

    key = normalize_key(key)
    if not principal.is_active:
        log.debug(f"Principal {principal.id} is deactivated - denied {key}")
        return False

    binding = binding_of(principal)
    if isinstance(binding, BoundRole):
        stmt = (
            select(Permission.id)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .where(
                and_(
                    role_permissions.c.role_id == binding.role_id,
                    Permission.key == key,
                )
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        granted = result.first() is not None
    else:
        defaults = defaults or get_default_permission_table()
        granted = defaults.allows(binding.account_type, key)

    if granted:
        log.debug(f"Principal {principal.id} granted {key} via {binding}")
    else:
        log.debug(f"Principal {principal.id} denied {key} via {binding}")
    return granted


async def require_permission(
    db: AsyncSession,
    principal: Optional[Principal],
    key: str,
    defaults: Optional[DefaultPermissionTable] = None,
) -> None:
    """
    Raise Forbidden unless the principal holds ``key``.
    
    Call before performing the guarded action; nothing may be written first.
    """
    if not await has_permission(db, principal, key, defaults):
        raise Forbidden(f"You do not have the required permission: {normalize_key(key)}")
