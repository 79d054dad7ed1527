"""
Organization (tenant) bootstrap and lookups.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.exceptions import DuplicateEmail, NotFound, ValidationError
from bounty_rbac.features.audit.service import record_audit
from bounty_rbac.features.authorization.defaults import ORGANIZATIONS_MANAGE, DefaultPermissionTable
from bounty_rbac.features.authorization.service import require_permission
from bounty_rbac.features.organizations.models import Organization
from bounty_rbac.features.principals.models import AccountType, Principal
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


async def create_organization(
    db: AsyncSession,
    actor: Principal,
    name: str,
    owner_first_name: str,
    owner_last_name: str,
    owner_email: str,
    owner_account_type: AccountType = AccountType.COMPANY_ADMIN,
    defaults: Optional[DefaultPermissionTable] = None,
) -> tuple[Organization, Principal]:
    """
    Create a tenant and its owner principal in one transaction.
    
    The owner starts unbound, i.e. with the default permissions of its
    account type, and can then compose roles for the rest of the team.
    """
    await require_permission(db, actor, ORGANIZATIONS_MANAGE, defaults)

    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name is required")
    if AccountType(owner_account_type) == AccountType.SUPER_ADMIN:
        raise ValidationError("Organization owners cannot be super admins")

    owner_email = (owner_email or "").strip().lower()
    existing = await db.execute(select(Principal.id).where(Principal.email == owner_email))
    if existing.first() is not None:
        raise DuplicateEmail("Email already in use")

    organization = Organization(name=name, is_active=True)
    db.add(organization)
    await db.flush()

    owner = Principal(
        first_name=owner_first_name.strip(),
        last_name=owner_last_name.strip(),
        email=owner_email,
        account_type=AccountType(owner_account_type),
        organization_id=organization.id,
        is_active=True,
    )
    db.add(owner)
    await db.flush()

    record_audit(
        db, actor, "create", "organization", organization.id,
        organization_id=organization.id,
        details={"name": name, "owner_id": owner.id, "owner_email": owner_email},
    )
    await db.commit()
    await db.refresh(organization)
    await db.refresh(owner)

    log.info(f"Organization {organization.id} created with owner {owner.id}")
    return organization, owner


async def list_organizations(
    db: AsyncSession,
    actor: Principal,
    skip: int = 0,
    limit: int = 50,
    defaults: Optional[DefaultPermissionTable] = None,
) -> list[Organization]:
    await require_permission(db, actor, ORGANIZATIONS_MANAGE, defaults)

    stmt = select(Organization).order_by(Organization.name, Organization.id).offset(skip).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_organization(db: AsyncSession, organization_id: str) -> Organization:
    organization = await db.get(Organization, organization_id)
    if organization is None:
        raise NotFound("Organization not found")
    return organization
