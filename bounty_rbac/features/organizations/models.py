"""
Organization model.

An organization is the tenant boundary: roles and principals always belong to
exactly one organization, and bindings never cross it.
"""
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from bounty_rbac.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class Organization(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant (the platform itself, a company,
    or a researcher team).
    """
    __tablename__ = "organizations"
    
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"
