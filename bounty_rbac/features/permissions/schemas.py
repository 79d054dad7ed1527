"""
Pydantic schemas for the permission registry.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class PermissionCreate(BaseModel):
    """Schema for creating a new permission."""
    key: str = Field(..., max_length=100, description="Unique key, e.g. 'report:export'")
    name: str = Field(..., max_length=100, description="Human-readable label")
    description: Optional[str] = Field(None, max_length=1000, description="Permission description")
    category: Optional[str] = Field(None, max_length=100, description="Grouping; defaults to the key prefix")


class PermissionResponse(BaseModel):
    """Schema for permission response."""
    id: str
    key: str
    name: str
    description: Optional[str]
    category: str
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class PermissionCategoryGroup(BaseModel):
    """Permissions of one category, as shown in the role editor."""
    category: str
    permissions: List[PermissionResponse]
