"""
Pydantic schemas for custom roles and role drafts.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from bounty_rbac.features.permissions.schemas import PermissionResponse


class RoleCreate(BaseModel):
    """Schema for creating a new role."""
    name: str = Field(..., max_length=100, description="Role name, unique within the organization")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")
    permission_ids: List[str] = Field(
        ...,
        validation_alias=AliasChoices("permission_ids", "permissionIds"),
        description="Permissions granted by the role (at least one)"
    )


class RoleUpdate(BaseModel):
    """Schema for a partial role update; ``permission_ids`` replaces the whole set."""
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    permission_ids: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("permission_ids", "permissionIds"),
    )


class RoleResponse(BaseModel):
    """Schema for role with permissions."""
    id: str
    name: str
    description: Optional[str]
    organization_id: str
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    permissions: List[PermissionResponse] = []
    
    model_config = ConfigDict(from_attributes=True)


class CategoryToggleRequest(BaseModel):
    """Toggle one category in an unsaved role draft."""
    selected_permission_ids: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selected_permission_ids", "selectedPermissionIds"),
    )
    category: str = Field(..., min_length=1, max_length=100)
    search: Optional[str] = Field(None, max_length=100, description="Only toggle permissions matching this term")


class CategoryToggleResponse(BaseModel):
    selected_permission_ids: List[str]
    category_permission_ids: List[str]
    all_selected: bool
