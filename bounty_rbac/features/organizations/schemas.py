"""
Pydantic schemas for organizations.
"""
from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from bounty_rbac.features.principals.models import AccountType
from bounty_rbac.features.principals.schemas import PrincipalResponse


class OwnerCreate(BaseModel):
    """First principal of a new organization."""
    first_name: str = Field(..., min_length=1, max_length=100, validation_alias=AliasChoices("first_name", "firstName"))
    last_name: str = Field(..., min_length=1, max_length=100, validation_alias=AliasChoices("last_name", "lastName"))
    email: EmailStr
    account_type: AccountType = Field(
        AccountType.COMPANY_ADMIN,
        validation_alias=AliasChoices("account_type", "accountType"),
    )


class OrganizationCreate(BaseModel):
    """Schema for creating an organization together with its owner."""
    name: str = Field(..., min_length=1, max_length=255)
    owner: OwnerCreate


class OrganizationResponse(BaseModel):
    """Schema for organization responses."""
    id: str
    name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class OrganizationCreated(BaseModel):
    organization: OrganizationResponse
    owner: PrincipalResponse
