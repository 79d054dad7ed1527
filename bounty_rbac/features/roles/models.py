"""
Role model: a named bundle of permissions owned by one organization.
"""
from sqlalchemy import String, ForeignKey, Index, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bounty_rbac.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin
from bounty_rbac.features.permissions.models import Permission, role_permissions


class Role(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Custom role composed of permissions.
    
    Examples: "Triage Lead", "Payments Approver", "Read-only Auditor"
    """
    __tablename__ = "roles"
    
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    # Principal that created the role
    created_by_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    
    permissions: Mapped[list[Permission]] = relationship(
        Permission,
        secondary=role_permissions,
        lazy="selectin",
        order_by=Permission.key,
    )
    
    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


# Role names are unique per organization, ignoring case
Index(
    "uq_roles_organization_lower_name",
    Role.organization_id,
    func.lower(Role.name),
    unique=True,
)
