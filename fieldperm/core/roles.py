"""
Role Hierarchy
Closed set of collaborator roles and the actions they can be granted
"""

from enum import Enum
from typing import Any, FrozenSet, Tuple

from fieldperm.core.exceptions import InvalidActionException, InvalidRoleException


class Role(str, Enum):
    """Collaborator role on a table, ordered from highest to lowest standing"""

    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        """Position in the hierarchy (0 = owner)"""
        return _ROLE_ORDER.index(self)

    @property
    def is_protected(self) -> bool:
        return self in PROTECTED_ROLES


class Action(str, Enum):
    """Action a role may perform on a field"""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


_ROLE_ORDER: Tuple[Role, ...] = (Role.OWNER, Role.ADMIN, Role.EDITOR, Role.VIEWER)

PROTECTED_ROLES: FrozenSet[Role] = frozenset({Role.OWNER, Role.ADMIN})

# Roles whose permissions may be overridden per field, in hierarchy order
CONFIGURABLE_ROLES: Tuple[Role, ...] = tuple(r for r in _ROLE_ORDER if r not in PROTECTED_ROLES)


def is_valid_role(role: Any) -> bool:
    """True only for owner, admin, editor and viewer"""
    if isinstance(role, Role):
        return True
    return isinstance(role, str) and role in Role._value2member_map_


def is_protected(role: Any) -> bool:
    """True for owner and admin; False for anything else, valid or not"""
    if not is_valid_role(role):
        return False
    return Role(role) in PROTECTED_ROLES


def parse_role(value: Any) -> Role:
    """
    Convert a raw role value into a Role

    Raises:
        InvalidRoleException: If value is not one of the four roles
    """
    if not is_valid_role(value):
        raise InvalidRoleException(value)
    return Role(value)


def parse_action(value: Any) -> Action:
    """
    Convert a raw action value into an Action

    Raises:
        InvalidActionException: If value is not read, write or delete
    """
    if isinstance(value, Action):
        return value
    if isinstance(value, str) and value in Action._value2member_map_:
        return Action(value)
    raise InvalidActionException(value)
