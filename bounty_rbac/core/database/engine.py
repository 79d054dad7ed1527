"""
Async engine, session factory and the ``get_db`` request dependency.

Any async SQLAlchemy URL works (``sqlite+aiosqlite://`` locally,
``postgresql+asyncpg://`` in production). On SQLite, foreign-key enforcement is
switched on for every connection so RESTRICT and SET NULL rules hold there too.
"""
from collections.abc import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from bounty_rbac.core import config


def enable_sqlite_foreign_keys(bind: AsyncEngine) -> None:
    """Run ``PRAGMA foreign_keys=ON`` on each new SQLite connection of ``bind``."""
    sync_engine = bind.sync_engine
    if sync_engine.dialect.name != "sqlite":
        return
    if event.contains(sync_engine, "connect", _sqlite_foreign_keys_on):
        return
    event.listen(sync_engine, "connect", _sqlite_foreign_keys_on)


def _sqlite_foreign_keys_on(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


_is_sqlite = config.SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    # SQLite files do not benefit from pooling
    poolclass=NullPool if _is_sqlite else None,
    echo=config.DATABASE_ECHO,
)
enable_sqlite_foreign_keys(engine)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session; commits on success, rolls back on any error.
    
    Services commit their own unit of work, so the final commit here is
    usually a no-op.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def import_models() -> None:
    """Import every model module so all tables register on Base.metadata."""
    from bounty_rbac.features.organizations.models import Organization  # noqa: F401
    from bounty_rbac.features.permissions.models import Permission, role_permissions  # noqa: F401
    from bounty_rbac.features.roles.models import Role  # noqa: F401
    from bounty_rbac.features.principals.models import Principal  # noqa: F401
    from bounty_rbac.features.audit.models import AuditLog  # noqa: F401


async def init_db(bind: AsyncEngine | None = None):
    """Create any missing tables on ``bind`` (the application engine by default)."""
    from bounty_rbac.core.database.base import Base

    import_models()

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
