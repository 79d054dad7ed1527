"""
Audit log model for tracking access-control changes.
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from bounty_rbac.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class AuditLog(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Audit log entry: who did what to which resource, in which organization.
    """
    __tablename__ = "audit_logs"
    
    actor_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    
    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    
    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor_id={self.actor_id}, action={self.action}, resource={self.resource_type})>"
