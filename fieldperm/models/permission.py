"""
Field Permission Pydantic Models
Request/response schemas for field permission endpoints
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from fieldperm.services.permissions.models import OverrideChange


class FieldPermissionItem(BaseModel):
    """One stored override"""
    field_id: str
    role: str
    can_read: bool
    can_write: bool
    can_delete: bool


class FieldPermissionListResponse(BaseModel):
    """Raw overrides of a table"""
    table_id: str
    permissions: List[FieldPermissionItem]


class SetFieldPermissionRequest(OverrideChange):
    """Single override upsert"""

    model_config = {
        "json_schema_extra": {
            "example": {
                "field_id": "fld_20240101120000_000001",
                "role": "viewer",
                "can_read": True,
                "can_write": False,
                "can_delete": False,
            }
        }
    }


class BatchSetFieldPermissionsRequest(BaseModel):
    """All-or-nothing set of override upserts"""
    permissions: List[OverrideChange] = Field(..., description="Changes to apply")


class ClearFieldPermissionsRequest(BaseModel):
    """Explicit denial for the given roles on every field"""
    roles: Optional[List[str]] = Field(None, description="Roles to clear (default: editor and viewer)")


class MutationResponse(BaseModel):
    """Outcome of a mutation"""
    success: bool = True
    table_id: str
    affected: int = Field(..., description="Overrides written or removed")


class PermissionCheckRequest(BaseModel):
    """Single permission query"""
    field_id: str
    action: str = Field(..., description="read, write or delete")
    role: Optional[str] = Field(None, description="Role to check (default: caller's role)")


class PermissionCheckResponse(BaseModel):
    """Decision for a permission query"""
    table_id: str
    field_id: str
    role: str
    action: str
    allowed: bool


class EffectivePermissionsResponse(BaseModel):
    """Resolved permissions of a role on every field of a table"""
    table_id: str
    role: str
    fields: Dict[str, Dict[str, bool]]
