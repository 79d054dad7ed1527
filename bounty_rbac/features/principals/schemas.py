"""
Pydantic schemas for principals and role bindings.

Request bodies accept both snake_case and the camelCase names used by the
dashboard (``roleId``, ``principalIds``, ``isActive``).
"""
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from bounty_rbac.features.principals.models import AccountType


class PrincipalCreate(BaseModel):
    """Schema for adding a team member to the caller's organization."""
    first_name: str = Field(..., min_length=1, max_length=100, validation_alias=AliasChoices("first_name", "firstName"))
    last_name: str = Field(..., min_length=1, max_length=100, validation_alias=AliasChoices("last_name", "lastName"))
    email: EmailStr
    custom_role_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("custom_role_id", "customRoleId"),
        description="Custom role to bind (null for the account-type default)"
    )


class PrincipalResponse(BaseModel):
    """Schema for principal responses."""
    id: str
    first_name: str
    last_name: str
    email: str
    account_type: AccountType
    is_active: bool
    organization_id: str
    custom_role_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class RoleAssignment(BaseModel):
    """Bind a principal to a role, or revert it to its default with null."""
    role_id: Optional[str] = Field(..., validation_alias=AliasChoices("role_id", "roleId"))


class BulkRoleAssignment(BaseModel):
    """Bind several principals to one role (or to their defaults)."""
    principal_ids: List[str] = Field(..., validation_alias=AliasChoices("principal_ids", "principalIds"))
    role_id: Optional[str] = Field(..., validation_alias=AliasChoices("role_id", "roleId"))


class BulkStatusUpdate(BaseModel):
    """Activate or deactivate several principals."""
    principal_ids: List[str] = Field(..., validation_alias=AliasChoices("principal_ids", "principalIds"))
    is_active: bool = Field(..., validation_alias=AliasChoices("is_active", "isActive"))


class BulkFailureResponse(BaseModel):
    id: str
    reason: str


class BulkResultResponse(BaseModel):
    """Outcome of a bulk call: how many rows changed and which ids were skipped."""
    updated_count: int
    failed: List[BulkFailureResponse] = []
    
    model_config = ConfigDict(from_attributes=True)
