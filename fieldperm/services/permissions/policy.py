"""
Default Permission Policy
Built-in fallback flags per role, used whenever no override exists
"""

from typing import Any, Dict

from fieldperm.core.roles import Action, Role
from fieldperm.services.permissions.models import ResolvedPermission

DEFAULT_POLICY: Dict[Role, ResolvedPermission] = {
    Role.OWNER: ResolvedPermission(can_read=True, can_write=True, can_delete=True),
    Role.ADMIN: ResolvedPermission(can_read=True, can_write=True, can_delete=True),
    Role.EDITOR: ResolvedPermission(can_read=True, can_write=True, can_delete=False),
    Role.VIEWER: ResolvedPermission(can_read=True, can_write=False, can_delete=False),
}

# Anything outside the enumeration gets nothing
NO_PERMISSIONS = ResolvedPermission(can_read=False, can_write=False, can_delete=False)


def default_permissions(role: Any) -> ResolvedPermission:
    """
    Default flags for a role

    Never raises: an unrecognized role resolves to all-false so that
    resolution always terminates with a decision.
    """
    try:
        return DEFAULT_POLICY[Role(role)]
    except ValueError:
        return NO_PERMISSIONS


def default_allows(role: Any, action: Action) -> bool:
    """Default decision for (role, action)"""
    return default_permissions(role).allows(action)
