import json

import pytest

from bounty_rbac.core.exceptions import Forbidden
from bounty_rbac.features.authorization.defaults import (
    BUILTIN_DEFAULTS,
    MEMBERS_MANAGE,
    ROLES_MANAGE,
    DefaultPermissionTable,
)
from bounty_rbac.features.authorization.service import (
    AccountDefault,
    BoundRole,
    binding_of,
    effective_permissions,
    has_permission,
    require_permission,
)
from bounty_rbac.features.principals.models import AccountType
from bounty_rbac.features.roles.service import create_role, update_role


class TestDefaultPermissionTable:
    """Account-type defaults supplied from outside the core."""

    def test_builtin_table(self):
        table = DefaultPermissionTable(BUILTIN_DEFAULTS)
        assert table.allows(AccountType.SUPER_ADMIN, "anything:at:all")
        assert table.allows(AccountType.COMPANY_ADMIN, "company:payments")
        assert not table.allows(AccountType.COMPANY_ADMIN, "admin:stats")
        assert table.allows(AccountType.TRIAGER, "Triage:Assign")

    def test_unlisted_account_type_gets_nothing(self):
        table = DefaultPermissionTable({"TRIAGER": ["triage:*"]})
        assert table.patterns_for(AccountType.RESEARCHER) == ()
        assert not table.allows(AccountType.RESEARCHER, "researcher:stats")

    def test_from_file(self, tmp_path):
        path = tmp_path / "defaults.json"
        path.write_text(json.dumps({"RESEARCHER": ["researcher:reports"]}))
        table = DefaultPermissionTable.from_file(str(path))
        assert table.allows(AccountType.RESEARCHER, "researcher:reports")
        assert not table.allows(AccountType.RESEARCHER, "researcher:stats")

    def test_from_file_rejects_non_object(self, tmp_path):
        path = tmp_path / "defaults.json"
        path.write_text("[]")
        with pytest.raises(ValueError):
            DefaultPermissionTable.from_file(str(path))


class TestHasPermission:
    """Authorization checks over the current binding."""

    async def test_unbound_uses_account_defaults(self, db, acme_admin):
        assert binding_of(acme_admin) == AccountDefault(AccountType.COMPANY_ADMIN)
        assert await has_permission(db, acme_admin, "company:programs")
        assert await has_permission(db, acme_admin, ROLES_MANAGE)
        assert not await has_permission(db, acme_admin, "admin:stats")

    async def test_super_admin_holds_everything(self, db, root):
        assert await has_permission(db, root, "admin:settings")
        assert await has_permission(db, root, "never:registered")

    async def test_bound_role_replaces_defaults(self, db, acme_admin, acme, make_principal, make_permission):
        stats = await make_permission("company:stats")
        role = await create_role(db, acme_admin, "Viewer", permission_ids=[stats.id])
        member = await make_principal(acme, custom_role_id=role.id)

        assert binding_of(member) == BoundRole(role.id)
        assert await has_permission(db, member, "company:stats")
        assert await has_permission(db, member, "COMPANY:STATS")
        assert not await has_permission(db, member, "company:programs")
        assert not await has_permission(db, member, MEMBERS_MANAGE)

    async def test_role_changes_apply_immediately(self, db, acme_admin, acme, make_principal, make_permission):
        stats = await make_permission("company:stats")
        payments = await make_permission("company:payments")
        role = await create_role(db, acme_admin, "Viewer", permission_ids=[stats.id])
        member = await make_principal(acme, custom_role_id=role.id)
        assert not await has_permission(db, member, "company:payments")

        await update_role(db, acme_admin, role.id, permission_ids=[payments.id])
        assert await has_permission(db, member, "company:payments")
        assert not await has_permission(db, member, "company:stats")

    async def test_deactivated_principal_denied_everything(self, db, root, platform_org, make_principal, make_permission):
        export = await make_permission("report:export")
        role = await create_role(db, root, "Lead", permission_ids=[export.id])
        bound = await make_principal(platform_org, custom_role_id=role.id, is_active=False)
        admin = await make_principal(platform_org, AccountType.SUPER_ADMIN, is_active=False)

        assert not await has_permission(db, bound, "report:export")
        assert not await has_permission(db, admin, "report:export")
        assert not await has_permission(db, admin, "anything:else")

    async def test_no_principal(self, db):
        assert not await has_permission(db, None, "report:export")

    async def test_custom_defaults(self, db, acme_admin):
        table = DefaultPermissionTable({"COMPANY_ADMIN": ["company:stats"]})
        assert await has_permission(db, acme_admin, "company:stats", table)
        assert not await has_permission(db, acme_admin, "company:programs", table)


class TestRequirePermission:
    """Typed failure for protected actions."""

    async def test_raises_forbidden(self, db, acme_admin):
        with pytest.raises(Forbidden) as exc:
            await require_permission(db, acme_admin, "Admin:Stats")
        assert exc.value.message == "You do not have the required permission: admin:stats"

    async def test_passes(self, db, acme_admin):
        assert await require_permission(db, acme_admin, "company:team") is None


class TestEffectivePermissions:
    """Resolved permission sets."""

    async def test_default_set_lists_matching_catalog_keys(self, db, acme_admin, make_permission):
        await make_permission("company:stats")
        await make_permission("company:team")
        await make_permission("admin:stats")

        effective = await effective_permissions(db, acme_admin)
        assert effective.source == "default"
        assert effective.keys == {"company:stats", "company:team"}
        assert effective.allows("company:not-in-catalog-yet")

    async def test_role_set(self, db, root, platform_org, make_principal, make_permission):
        export = await make_permission("report:export")
        role = await create_role(db, root, "Lead", permission_ids=[export.id])
        member = await make_principal(platform_org, custom_role_id=role.id)

        effective = await effective_permissions(db, member)
        assert effective.source == "role"
        assert effective.role_id == role.id
        assert effective.keys == {"report:export"}
        assert effective.covers(["report:export"])
        assert not effective.covers(["report:export", "report:view"])

    async def test_inactive_set_is_empty(self, db, platform_org, make_principal):
        member = await make_principal(platform_org, AccountType.SUPER_ADMIN, is_active=False)
        effective = await effective_permissions(db, member)
        assert effective.source == "inactive"
        assert not effective.allows("anything:at_all")
