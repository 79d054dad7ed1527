"""
Account-type default permissions.

Principals without a custom role fall back to the permission set of their
account type. The table is supplied from outside the core: either the built-in
table below, a JSON file named by ``DEFAULT_PERMISSIONS_FILE``, or a FastAPI
dependency override of ``get_default_permission_table``.

Entries are key patterns matched with shell-style wildcards, e.g. ``company:*``.
"""
import json
from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, Mapping

from bounty_rbac.core import config
from bounty_rbac.features.permissions.keys import normalize_key
from bounty_rbac.features.principals.models import AccountType
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


# Keys guarding the access-control API itself
PERMISSIONS_MANAGE = "permissions:manage"
ROLES_MANAGE = "roles:manage"
MEMBERS_MANAGE = "members:manage"
AUDIT_VIEW = "audit:view"
ORGANIZATIONS_MANAGE = "organizations:manage"


BUILTIN_DEFAULTS: dict[AccountType, tuple[str, ...]] = {
    AccountType.SUPER_ADMIN: ("*",),
    AccountType.ADMIN: ("admin:*", "permissions:*", "roles:*", "members:*", "audit:*"),
    AccountType.COMPANY_ADMIN: ("company:*", "roles:*", "members:*", "audit:*"),
    AccountType.RESEARCHER: ("researcher:*", "roles:*", "members:*"),
    AccountType.TRIAGER: ("triage:*",),
}


# Labels shown for principals without a custom role
DEFAULT_LABELS: dict[AccountType, str] = {
    AccountType.SUPER_ADMIN: "Full System Admin (Default)",
    AccountType.ADMIN: "Full System Admin (Default)",
    AccountType.COMPANY_ADMIN: "Standard Member",
    AccountType.RESEARCHER: "Standard Member",
    AccountType.TRIAGER: "Standard Member",
}


class DefaultPermissionTable:
    """Maps each account type to the key patterns it is granted when unbound."""

    def __init__(self, patterns: Mapping[AccountType | str, Iterable[str]]):
        self._patterns: dict[AccountType, tuple[str, ...]] = {}
        for account_type, entries in patterns.items():
            self._patterns[AccountType(account_type)] = tuple(
                normalize_key(entry) for entry in entries if normalize_key(entry)
            )

    @classmethod
    def from_file(cls, path: str) -> "DefaultPermissionTable":
        """
        Load a table from JSON shaped like
        ``{"COMPANY_ADMIN": ["company:*", "roles:*"], ...}``.
        Account types missing from the file get no default permissions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Default permission file {path} must contain a JSON object")
        return cls(data)

    def patterns_for(self, account_type: AccountType) -> tuple[str, ...]:
        return self._patterns.get(AccountType(account_type), ())

    def allows(self, account_type: AccountType, key: str) -> bool:
        key = normalize_key(key)
        return any(fnmatchcase(key, pattern) for pattern in self.patterns_for(account_type))


@lru_cache(maxsize=1)
def get_default_permission_table() -> DefaultPermissionTable:
    """
    FastAPI dependency returning the active default table.
    
    Override in tests or deployments:
        app.dependency_overrides[get_default_permission_table] = lambda: DefaultPermissionTable({...})
    """
    if config.DEFAULT_PERMISSIONS_FILE:
        log.info("Loading default permissions from %s", config.DEFAULT_PERMISSIONS_FILE)
        return DefaultPermissionTable.from_file(config.DEFAULT_PERMISSIONS_FILE)
    return DefaultPermissionTable(BUILTIN_DEFAULTS)
