import pytest

from bounty_rbac.core.exceptions import (
    BatchTooLarge,
    CrossScope,
    DuplicateEmail,
    Forbidden,
    NotFound,
    ValidationError,
)
from bounty_rbac.features.principals import service
from bounty_rbac.features.principals.models import AccountType
from bounty_rbac.features.roles.service import create_role


@pytest.fixture
async def triage_lead(db, root, make_permission):
    export = await make_permission("report:export")
    return await create_role(db, root, "Triage Lead", permission_ids=[export.id])


class TestAssignRole:
    """Binding a single principal to a role or back to its default."""

    async def test_assign_and_unassign(self, db, root, platform_org, make_principal, triage_lead):
        member = await make_principal(platform_org)

        bound = await service.assign_role(db, root, member.id, triage_lead.id)
        assert bound.custom_role_id == triage_lead.id

        unbound = await service.assign_role(db, root, member.id, None)
        assert unbound.custom_role_id is None

    async def test_unknown_role(self, db, root, platform_org, make_principal):
        member = await make_principal(platform_org)
        with pytest.raises(NotFound):
            await service.assign_role(db, root, member.id, "missing")

    async def test_unknown_principal(self, db, root, triage_lead):
        with pytest.raises(NotFound):
            await service.assign_role(db, root, "missing", triage_lead.id)

    async def test_role_from_other_organization(self, db, root, acme_admin, platform_org, make_principal, make_permission):
        programs = await make_permission("company:programs")
        acme_role = await create_role(db, acme_admin, "Program Manager", permission_ids=[programs.id])
        member = await make_principal(platform_org)

        with pytest.raises(CrossScope):
            await service.assign_role(db, root, member.id, acme_role.id)
        assert member.custom_role_id is None

    async def test_principal_from_other_organization(self, db, root, acme, make_principal, triage_lead):
        outsider = await make_principal(acme)
        with pytest.raises(CrossScope):
            await service.assign_role(db, root, outsider.id, triage_lead.id)

    async def test_requires_members_manage(self, db, platform_org, make_principal, triage_lead):
        triager = await make_principal(platform_org, AccountType.TRIAGER)
        member = await make_principal(platform_org)
        with pytest.raises(Forbidden):
            await service.assign_role(db, triager, member.id, triage_lead.id)


class TestBulkAssignRole:
    """Binding many principals in one call."""

    async def test_bulk_assign(self, db, root, platform_org, make_principal, triage_lead):
        u2 = await make_principal(platform_org)
        u3 = await make_principal(platform_org)

        result = await service.bulk_assign_role(db, root, [u2.id, u3.id], triage_lead.id)
        assert result.updated_count == 2
        assert result.failed == []
        assert u2.custom_role_id == triage_lead.id
        assert u3.custom_role_id == triage_lead.id

    async def test_continues_past_failures(self, db, root, platform_org, acme, make_principal, triage_lead):
        u2 = await make_principal(platform_org)
        outsider = await make_principal(acme)

        result = await service.bulk_assign_role(
            db, root, [u2.id, "missing", outsider.id, u2.id], triage_lead.id
        )
        assert result.updated_count == 1
        assert [(f.id, f.reason) for f in result.failed] == [
            ("missing", "Principal not found"),
            (outsider.id, "Principal belongs to a different organization"),
        ]
        assert outsider.custom_role_id is None

    async def test_bulk_unassign(self, db, root, platform_org, make_principal, triage_lead):
        u2 = await make_principal(platform_org, custom_role_id=triage_lead.id)
        result = await service.bulk_assign_role(db, root, [u2.id], None)
        assert result.updated_count == 1
        assert u2.custom_role_id is None

    async def test_batch_bound(self, db, root, platform_org, make_principal, triage_lead):
        members = [await make_principal(platform_org) for _ in range(3)]
        with pytest.raises(BatchTooLarge):
            await service.bulk_assign_role(
                db, root, [m.id for m in members], triage_lead.id, max_batch_size=2
            )
        assert all(m.custom_role_id is None for m in members)

    async def test_foreign_role_fails_whole_call(self, db, root, acme_admin, platform_org, make_principal, make_permission):
        programs = await make_permission("company:programs")
        acme_role = await create_role(db, acme_admin, "Program Manager", permission_ids=[programs.id])
        member = await make_principal(platform_org)
        with pytest.raises(CrossScope):
            await service.bulk_assign_role(db, root, [member.id], acme_role.id)


class TestBulkToggleActive:
    """Activating and deactivating many principals."""

    async def test_deactivate_all(self, db, root, platform_org, make_principal, triage_lead):
        a = await make_principal(platform_org, custom_role_id=triage_lead.id)
        b = await make_principal(platform_org)
        c = await make_principal(platform_org)

        result = await service.bulk_toggle_active(db, root, [a.id, b.id, c.id], False)
        assert result.updated_count == 3
        assert result.failed == []
        assert [a.is_active, b.is_active, c.is_active] == [False, False, False]
        assert a.custom_role_id == triage_lead.id

    async def test_cannot_change_own_status(self, db, root, platform_org, make_principal):
        a = await make_principal(platform_org)
        result = await service.bulk_toggle_active(db, root, [root.id, a.id], False)
        assert result.updated_count == 1
        assert [(f.id, f.reason) for f in result.failed] == [(root.id, "Cannot change your own status")]
        assert root.is_active is True

    async def test_reactivate(self, db, root, platform_org, make_principal):
        a = await make_principal(platform_org, is_active=False)
        result = await service.bulk_toggle_active(db, root, [a.id], True)
        assert result.updated_count == 1
        assert a.is_active is True


class TestPrincipalLifecycle:
    """Adding and removing team members."""

    async def test_create_inherits_account_type(self, db, acme_admin):
        member = await service.create_principal(db, acme_admin, "Ada", "Lovelace", "Ada@Example.com")
        assert member.account_type == AccountType.COMPANY_ADMIN
        assert member.organization_id == acme_admin.organization_id
        assert member.email == "ada@example.com"
        assert member.custom_role_id is None

    async def test_duplicate_email(self, db, acme_admin):
        await service.create_principal(db, acme_admin, "Ada", "Lovelace", "ada@example.com")
        with pytest.raises(DuplicateEmail):
            await service.create_principal(db, acme_admin, "Ada", "Again", "ADA@example.com")

    async def test_create_with_role(self, db, root, triage_lead):
        member = await service.create_principal(
            db, root, "Grace", "Hopper", "grace@example.com", custom_role_id=triage_lead.id
        )
        assert member.custom_role_id == triage_lead.id

    async def test_cannot_delete_self(self, db, root):
        with pytest.raises(ValidationError):
            await service.delete_principal(db, root, root.id)

    async def test_delete_member(self, db, root, platform_org, make_principal):
        member = await make_principal(platform_org)
        member_id = member.id
        await service.delete_principal(db, root, member_id)
        with pytest.raises(NotFound):
            await service.get_principal(db, root, member_id)

    async def test_list_scoped_to_organization(self, db, root, acme_admin, platform_org, make_principal):
        await make_principal(platform_org, is_active=False)
        ids = {p.id for p in await service.list_principals(db, root)}
        assert acme_admin.id not in ids
        assert root.id in ids
        active = await service.list_principals(db, root, is_active=True)
        assert [p.id for p in active] == [root.id]
