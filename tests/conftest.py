"""
Shared fixtures: an in-memory database per test, an HTTP client bound to it,
and factories for organizations, principals and permissions.
"""
import itertools
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "0"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bounty_rbac.core.database.engine import enable_sqlite_foreign_keys, get_db, init_db
from bounty_rbac.features.organizations.models import Organization
from bounty_rbac.features.permissions.keys import derive_category, validate_key
from bounty_rbac.features.permissions.models import Permission
from bounty_rbac.features.principals.auth import create_access_token
from bounty_rbac.features.principals.models import AccountType, Principal
from bounty_rbac.main import app


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db):
    async def override_get_db():
        try:
            yield db
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(principal: Principal) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(principal.id)}"}
    return _headers


@pytest.fixture
def make_organization(db):
    async def _make(name: str = "Acme Security") -> Organization:
        organization = Organization(name=name, is_active=True)
        db.add(organization)
        await db.commit()
        await db.refresh(organization)
        return organization
    return _make


@pytest.fixture
def make_principal(db):
    counter = itertools.count(1)

    async def _make(
        organization: Organization,
        account_type: AccountType = AccountType.COMPANY_ADMIN,
        custom_role_id: str | None = None,
        is_active: bool = True,
    ) -> Principal:
        n = next(counter)
        principal = Principal(
            first_name="Member",
            last_name=str(n),
            email=f"member{n}@example.com",
            account_type=account_type,
            organization_id=organization.id,
            custom_role_id=custom_role_id,
            is_active=is_active,
        )
        db.add(principal)
        await db.commit()
        await db.refresh(principal)
        return principal
    return _make


@pytest.fixture
def make_permission(db):
    async def _make(key: str, name: str | None = None, category: str | None = None) -> Permission:
        key = validate_key(key)
        permission = Permission(
            key=key,
            name=name or key.replace(":", " ").title(),
            category=(category or "").lower() or derive_category(key),
        )
        db.add(permission)
        await db.commit()
        await db.refresh(permission)
        return permission
    return _make


@pytest.fixture
async def platform_org(make_organization):
    return await make_organization("Platform")


@pytest.fixture
async def acme(make_organization):
    return await make_organization("Acme Security")


@pytest.fixture
async def root(platform_org, make_principal):
    return await make_principal(platform_org, AccountType.SUPER_ADMIN)


@pytest.fixture
async def acme_admin(acme, make_principal):
    return await make_principal(acme, AccountType.COMPANY_ADMIN)
