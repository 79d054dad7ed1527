"""
Permission model and the role-permission association.

A permission is an atomic capability identified by a ``category:action`` key.
Keys are stored lower-cased so the unique index is case-insensitive.
"""
from sqlalchemy import String, ForeignKey, Table, Column, Text
from sqlalchemy.orm import Mapped, mapped_column

from bounty_rbac.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


# Role-Permission relationship
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(26), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(26), ForeignKey("permissions.id", ondelete="RESTRICT"), primary_key=True),
)


class Permission(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Permission model defining a single capability.
    
    Examples:
    - key="report:export", category="report"
    - key="admin:settings", category="admin"
    """
    __tablename__ = "permissions"
    
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    
    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, key={self.key!r}, category={self.category})>"
