"""
Permission Templates
Named presets applied to every field of a table in one batch
"""

from typing import Dict, List

from fieldperm.core.exceptions import ValidationException
from fieldperm.core.roles import Role
from fieldperm.services.permissions.models import OverrideChange, PermissionFlags

READ_ONLY = PermissionFlags(can_read=True, can_write=False, can_delete=False)

# "default" has no entry: it removes overrides instead of writing them
TEMPLATES: Dict[str, Dict[Role, PermissionFlags]] = {
    "read_only": {
        Role.EDITOR: READ_ONLY,
        Role.VIEWER: READ_ONLY,
    },
    "strict": {
        Role.EDITOR: READ_ONLY,
        Role.VIEWER: PermissionFlags.denied(),
    },
}

DEFAULT_TEMPLATE = "default"

TEMPLATE_NAMES = [DEFAULT_TEMPLATE, *TEMPLATES]


def build_template_changes(name: str, field_ids: List[str]) -> List[OverrideChange]:
    """
    Expand a template into per-field override changes

    Returns an empty list for the default template.

    Raises:
        ValidationException: Unknown template name
    """
    if name == DEFAULT_TEMPLATE:
        return []

    template = TEMPLATES.get(name)
    if template is None:
        raise ValidationException(
            message=f"Unknown permission template: {name}",
            details={"template": name, "valid_templates": TEMPLATE_NAMES},
        )

    return [
        OverrideChange.from_flags(field_id, role, flags)
        for field_id in field_ids
        for role, flags in template.items()
    ]
