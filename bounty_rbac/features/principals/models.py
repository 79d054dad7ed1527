"""
Principal model: a user account that can be bound to a custom role.
"""
import enum
from sqlalchemy import String, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from bounty_rbac.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class AccountType(str, enum.Enum):
    """Base account type; selects the default permission set of unbound principals."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    COMPANY_ADMIN = "COMPANY_ADMIN"
    RESEARCHER = "RESEARCHER"
    TRIAGER = "TRIAGER"


class Principal(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Principal model: admin team member, company employee, or researcher-team member.
    
    ``custom_role_id`` is null when the principal uses the default permission
    set of its account type.
    """
    __tablename__ = "principals"
    
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    
    account_type: Mapped[AccountType] = mapped_column(
        SQLEnum(AccountType),
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    custom_role_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<Principal(id={self.id}, email={self.email!r}, type={self.account_type.value})>"
