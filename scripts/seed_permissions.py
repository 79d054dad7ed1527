"""
Seed script to populate the permission catalog and bootstrap the platform.

Run this script after database initialization to create:
- The platform permission catalog (dashboard sections and API guards)
- The platform organization
- A super admin principal, whose bearer token is printed

Running it again only adds what is missing.

Usage:
    python -m scripts.seed_permissions
    SEED_ADMIN_EMAIL=root@example.com python -m scripts.seed_permissions
"""
import asyncio
import os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_rbac.core.database.engine import get_db, init_db
from bounty_rbac.features.authorization.defaults import (
    AUDIT_VIEW,
    MEMBERS_MANAGE,
    ORGANIZATIONS_MANAGE,
    PERMISSIONS_MANAGE,
    ROLES_MANAGE,
)
from bounty_rbac.features.organizations.models import Organization
from bounty_rbac.features.permissions.keys import derive_category, validate_key
from bounty_rbac.features.permissions.models import Permission
from bounty_rbac.features.principals.auth import create_access_token
from bounty_rbac.features.principals.models import AccountType, Principal
from bounty_rbac.utils import get_logger


log = get_logger(__name__)


PLATFORM_ORGANIZATION = "Platform"

DEFAULT_PERMISSIONS = [
    # Platform admin dashboard
    ("admin:stats", "Dashboard Stats", "View platform-wide statistics"),
    ("admin:researchers", "Researchers", "Manage researcher accounts"),
    ("admin:companies", "Companies", "Manage company accounts"),
    ("admin:triagers", "Triagers", "Manage triager accounts"),
    ("admin:approvals", "Approvals", "Review pending approvals"),
    ("admin:programs", "Programs", "Manage all bounty programs"),
    ("admin:triage", "Triage Queue", "Oversee the triage queue"),
    ("admin:events", "Events", "Manage platform events"),
    ("admin:settings", "Settings", "Change platform settings"),

    # Company dashboard
    ("company:stats", "Dashboard Stats", "View company statistics"),
    ("company:programs", "Programs", "Manage company bounty programs"),
    ("company:triage", "Reports", "Review submitted reports"),
    ("company:payments", "Payments", "Manage bounty payments"),
    ("company:audit", "Audit Logs", "View company audit logs"),
    ("company:team", "Team", "Manage company team members"),

    # Researcher dashboard
    ("researcher:stats", "Dashboard Stats", "View researcher statistics"),
    ("researcher:reports", "Reports", "Manage submitted reports"),

    # Access control API
    (PERMISSIONS_MANAGE, "Manage Permissions", "Create and delete catalog permissions"),
    (ROLES_MANAGE, "Manage Roles", "Create, update and delete custom roles"),
    (MEMBERS_MANAGE, "Manage Members", "Add members, bind roles and change member status"),
    (AUDIT_VIEW, "View Audit Trail", "Read access-control audit entries"),
    (ORGANIZATIONS_MANAGE, "Manage Organizations", "Create organizations and their owners"),
]


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create catalog permissions that do not exist yet.
    
    Returns:
        Dictionary mapping permission keys to Permission objects
    """
    log.info("Creating catalog permissions...")
    permissions_map = {}
    created = 0

    for key, name, description in DEFAULT_PERMISSIONS:
        key = validate_key(key)
        result = await db.execute(select(Permission).where(Permission.key == key))
        existing = result.scalars().first()

        if existing:
            log.debug(f"Permission '{key}' already exists, skipping")
            permissions_map[key] = existing
            continue

        permission = Permission(
            key=key,
            name=name,
            description=description,
            category=derive_category(key),
        )
        db.add(permission)
        permissions_map[key] = permission
        created += 1
        log.info(f"Created permission: {key}")

    await db.commit()
    log.info(f"Catalog has {len(permissions_map)} seeded permissions ({created} new)")
    return permissions_map


async def seed_super_admin(db: AsyncSession, email: str) -> Principal:
    """Create the platform organization and its super admin if missing."""
    result = await db.execute(select(Principal).where(Principal.email == email))
    admin = result.scalars().first()
    if admin:
        log.debug(f"Super admin '{email}' already exists, skipping")
        return admin

    result = await db.execute(select(Organization).where(Organization.name == PLATFORM_ORGANIZATION))
    organization = result.scalars().first()
    if organization is None:
        organization = Organization(name=PLATFORM_ORGANIZATION, is_active=True)
        db.add(organization)
        await db.flush()
        log.info(f"Created organization: {PLATFORM_ORGANIZATION}")

    admin = Principal(
        first_name="Platform",
        last_name="Admin",
        email=email,
        account_type=AccountType.SUPER_ADMIN,
        organization_id=organization.id,
        is_active=True,
    )
    db.add(admin)
    await db.commit()
    log.info(f"Created super admin: {email}")
    return admin


async def main():
    """Main function to seed the catalog and the super admin."""
    log.info("Starting permission seeding...")

    log.info("Initializing database tables...")
    await init_db()

    email = os.environ.get("SEED_ADMIN_EMAIL", "admin@platform.local").strip().lower()

    async for db in get_db():
        try:
            await seed_permissions(db)
            admin = await seed_super_admin(db, email)

            log.info("Permission seeding completed successfully!")
            print(f"Super admin id: {admin.id}")
            print(f"Bearer token: {create_access_token(admin.id)}")

        except Exception as e:
            log.error(f"Error seeding permissions: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
