"""
Pydantic schemas for authorization introspection.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class PermissionCheckRequest(BaseModel):
    """Schema for checking if the caller holds a permission."""
    key: str = Field(..., min_length=1, max_length=100, description="Permission key, e.g. 'report:export'")


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    has_permission: bool
    reason: Optional[str] = None


class EffectivePermissionsResponse(BaseModel):
    """Everything the caller currently holds and where it comes from."""
    principal_id: str
    source: str
    role_id: Optional[str] = None
    label: Optional[str] = None
    keys: List[str] = []
    patterns: List[str] = []
