"""
Permission Models
Pydantic models for field overrides, change requests and resolved decisions
"""

from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

from fieldperm.core.roles import Action, Role


class PermissionFlags(BaseModel):
    """Read/write/delete flags for one (field, role) pair"""

    model_config = ConfigDict(frozen=True)

    can_read: bool = Field(description="Role may see the field")
    can_write: bool = Field(description="Role may edit the field")
    can_delete: bool = Field(description="Role may clear the field's value")

    def allows(self, action: Action) -> bool:
        """Flag corresponding to action"""
        if action is Action.READ:
            return self.can_read
        if action is Action.WRITE:
            return self.can_write
        return self.can_delete

    def as_dict(self) -> Dict[str, bool]:
        return {
            "read": self.can_read,
            "write": self.can_write,
            "delete": self.can_delete,
        }

    @classmethod
    def granted(cls) -> "PermissionFlags":
        return cls(can_read=True, can_write=True, can_delete=True)

    @classmethod
    def denied(cls) -> "PermissionFlags":
        return cls(can_read=False, can_write=False, can_delete=False)


class ResolvedPermission(PermissionFlags):
    """Effective permissions of a role on a field (derived, never persisted)"""


class FieldOverride(BaseModel):
    """Explicit permission override for one (table, field, role) triple"""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    table_id: str
    field_id: str
    role: Role
    can_read: bool
    can_write: bool
    can_delete: bool

    @property
    def key(self) -> Tuple[str, Role]:
        return (self.field_id, self.role)

    @property
    def flags(self) -> PermissionFlags:
        return PermissionFlags(
            can_read=self.can_read,
            can_write=self.can_write,
            can_delete=self.can_delete,
        )


class OverrideChange(BaseModel):
    """
    One requested override write

    The role is kept as the raw string so that a batch can report every
    invalid role instead of failing on the first one during parsing.
    """

    field_id: str = Field(min_length=1, description="Target field ID")
    role: str = Field(description="Target role (editor or viewer)")
    can_read: bool
    can_write: bool
    can_delete: bool

    @property
    def flags(self) -> PermissionFlags:
        return PermissionFlags(
            can_read=self.can_read,
            can_write=self.can_write,
            can_delete=self.can_delete,
        )

    @classmethod
    def from_flags(cls, field_id: str, role: str, flags: PermissionFlags) -> "OverrideChange":
        return cls(
            field_id=field_id,
            role=str(role.value if isinstance(role, Role) else role),
            can_read=flags.can_read,
            can_write=flags.can_write,
            can_delete=flags.can_delete,
        )
