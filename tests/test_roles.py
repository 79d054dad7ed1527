import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import configure_mappers

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
from bounty_rbac.features.organizations.models import Organization
from bounty_rbac.features.permissions.models import Permission
from bounty_rbac.features.principals.models import AccountType, Principal
from bounty_rbac.features.principals.service import assign_role
from bounty_rbac.features.roles import service
from bounty_rbac.features.roles.models import Role


class TestCreateRole:
    """Composing roles from catalog permissions."""

    async def test_create_role(self, db, root, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(
            db, root, "Triage Lead", description="Leads triage", permission_ids=[export.id]
        )
        assert role.name == "Triage Lead"
        assert role.organization_id == root.organization_id
        assert role.created_by_id == root.id
        assert [p.key for p in role.permissions] == ["report:export"]

    async def test_empty_permission_set_rejected(self, db, root):
        with pytest.raises(EmptyPermissionSet):
            await service.create_role(db, root, "Empty", permission_ids=[])
        assert await service.list_roles(db, root) == []

    async def test_empty_permission_set_is_validation_error(self, db, root):
        with pytest.raises(ValidationError):
            await service.create_role(db, root, "Empty", permission_ids=[])

    async def test_blank_name_rejected(self, db, root, make_permission):
        export = await make_permission("report:export")
        with pytest.raises(ValidationError) as exc:
            await service.create_role(db, root, "   ", permission_ids=[export.id])
        assert exc.value.message == "Role name is required"

    async def test_unknown_permission_rejected(self, db, root, make_permission):
        export = await make_permission("report:export")
        with pytest.raises(UnknownPermission) as exc:
            await service.create_role(db, root, "Lead", permission_ids=[export.id, "nope"])
        assert exc.value.missing_ids == ["nope"]

    async def test_duplicate_name_in_organization(self, db, root, make_permission):
        export = await make_permission("report:export")
        await service.create_role(db, root, "Triage Lead", permission_ids=[export.id])
        with pytest.raises(DuplicateName):
            await service.create_role(db, root, "triage lead", permission_ids=[export.id])

    async def test_unique_index_reports_duplicate_name(self, db, root, make_permission, monkeypatch):
        async def skip_check(*args, **kwargs):
            return None

        export = await make_permission("report:export")
        await service.create_role(db, root, "Triage Lead", permission_ids=[export.id])
        monkeypatch.setattr(service, "_ensure_unique_name", skip_check)
        with pytest.raises(DuplicateName) as exc:
            await service.create_role(db, root, "TRIAGE LEAD", permission_ids=[export.id])
        assert exc.value.message == "A role named 'TRIAGE LEAD' already exists"

    async def test_same_name_in_other_organization(self, db, acme_admin, make_permission, make_organization, make_principal):
        programs = await make_permission("company:programs")
        other = await make_principal(await make_organization("Globex"))
        await service.create_role(db, acme_admin, "Program Manager", permission_ids=[programs.id])
        role = await service.create_role(db, other, "Program Manager", permission_ids=[programs.id])
        assert role.organization_id == other.organization_id

    async def test_cannot_grant_permissions_actor_lacks(self, db, acme_admin, make_permission):
        stats = await make_permission("admin:stats")
        with pytest.raises(Forbidden) as exc:
            await service.create_role(db, acme_admin, "Sneaky", permission_ids=[stats.id])
        assert exc.value.message == "Unauthorized permission assignment detected"

    async def test_requires_roles_manage(self, db, acme, make_principal, make_permission):
        triager = await make_principal(acme, account_type=AccountType.TRIAGER)
        assign = await make_permission("triage:assign")
        with pytest.raises(Forbidden):
            await service.create_role(db, triager, "Triage", permission_ids=[assign.id])


class TestUpdateRole:
    """Partial updates and full permission replacement."""

    async def test_permission_ids_replace_set(self, db, root, make_permission):
        export = await make_permission("report:export")
        view = await make_permission("report:view")
        role = await service.create_role(db, root, "Lead", permission_ids=[export.id])

        updated = await service.update_role(db, root, role.id, permission_ids=[view.id])
        assert [p.key for p in updated.permissions] == ["report:view"]

    async def test_metadata_only_keeps_permissions(self, db, root, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(db, root, "Lead", description="Old", permission_ids=[export.id])

        updated = await service.update_role(db, root, role.id, name="Senior Lead")
        assert updated.name == "Senior Lead"
        assert updated.description == "Old"
        assert [p.key for p in updated.permissions] == ["report:export"]

    async def test_empty_description_clears(self, db, root, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(db, root, "Lead", description="Old", permission_ids=[export.id])
        updated = await service.update_role(db, root, role.id, description="")
        assert updated.description is None

    async def test_cannot_empty_role(self, db, root, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(db, root, "Lead", permission_ids=[export.id])

        with pytest.raises(EmptyPermissionSet):
            await service.update_role(db, root, role.id, permission_ids=[])
        reloaded = await service.get_role(db, root, role.id)
        assert [p.key for p in reloaded.permissions] == ["report:export"]

    async def test_rename_to_taken_name(self, db, root, make_permission):
        export = await make_permission("report:export")
        await service.create_role(db, root, "Lead", permission_ids=[export.id])
        other = await service.create_role(db, root, "Viewer", permission_ids=[export.id])
        with pytest.raises(DuplicateName):
            await service.update_role(db, root, other.id, name="LEAD")

    async def test_rename_collision_caught_by_unique_index(self, db, root, make_permission, monkeypatch):
        async def skip_check(*args, **kwargs):
            return None

        export = await make_permission("report:export")
        await service.create_role(db, root, "Lead", permission_ids=[export.id])
        other = await service.create_role(db, root, "Viewer", permission_ids=[export.id])
        other_id = other.id
        monkeypatch.setattr(service, "_ensure_unique_name", skip_check)
        with pytest.raises(DuplicateName):
            await service.update_role(db, root, other_id, name="lead")

    async def test_foreign_role(self, db, root, acme_admin, make_permission):
        programs = await make_permission("company:programs")
        role = await service.create_role(db, acme_admin, "Program Manager", permission_ids=[programs.id])
        with pytest.raises(CrossScope):
            await service.update_role(db, root, role.id, name="Mine now")

    async def test_unknown_role(self, db, root):
        with pytest.raises(NotFound):
            await service.update_role(db, root, "missing", name="x")


class TestDeleteRole:
    """A role cannot be deleted while principals are bound to it."""

    async def test_delete_guarded_until_unassigned(self, db, root, platform_org, make_principal, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(db, root, "Triage Lead", permission_ids=[export.id])
        member = await make_principal(platform_org)
        await assign_role(db, root, member.id, role.id)

        with pytest.raises(RoleInUse) as exc:
            await service.delete_role(db, root, role.id)
        assert exc.value.member_count == 1
        assert exc.value.message == "Cannot delete role: currently assigned to 1 member"

        await assign_role(db, root, member.id, None)
        await service.delete_role(db, root, role.id)
        assert await db.get(Role, role.id) is None

    async def test_count_role_members(self, db, root, platform_org, make_principal, make_permission):
        export = await make_permission("report:export")
        role = await service.create_role(db, root, "Lead", permission_ids=[export.id])
        await make_principal(platform_org, custom_role_id=role.id)
        await make_principal(platform_org, custom_role_id=role.id)
        assert await service.count_role_members(db, role.id) == 2

    async def test_delete_unknown(self, db, root):
        with pytest.raises(NotFound):
            await service.delete_role(db, root, "missing")


class TestRoleMapping:
    """Only the role-to-permission link is a mapped relationship."""

    def test_mapped_relationships(self):
        configure_mappers()
        assert list(inspect(Role).relationships.keys()) == ["permissions"]
        for model in (Permission, Principal, Organization):
            assert not inspect(model).relationships
