"""
Permission Resolver
Answers "can role R do action A on field F of table T?"
"""

from typing import Dict, Iterable, List

from fieldperm.core.exceptions import UnknownFieldException
from fieldperm.core.logging import get_logger
from fieldperm.core.roles import Action, Role, parse_action, parse_role
from fieldperm.monitoring import record_check
from fieldperm.services.permissions.cache import PermissionCache, TableOverrides
from fieldperm.services.permissions.models import ResolvedPermission
from fieldperm.services.permissions.policy import default_permissions
from fieldperm.services.permissions.providers import SchemaProvider

logger = get_logger(__name__)

FULL_ACCESS = ResolvedPermission(can_read=True, can_write=True, can_delete=True)


class PermissionResolver:
    """
    Layered resolution of field permissions

    Exactly one tier decides each query:
    1. protected role (owner, admin) -> always allowed, overrides ignored
    2. explicit override for (table, field, role)
    3. default policy of the role

    Missing overrides are never an error. Invalid roles, actions or fields
    in the query itself are rejected instead of silently defaulted.
    """

    def __init__(self, cache: PermissionCache, schema: SchemaProvider):
        self._cache = cache
        self._schema = schema

    @staticmethod
    def _decide(snapshot: TableOverrides, field_id: str, role: Role) -> ResolvedPermission:
        if role.is_protected:
            return FULL_ACCESS

        override = snapshot.get(field_id, role)
        if override is not None:
            return ResolvedPermission(**override.flags.model_dump())

        return default_permissions(role)

    async def resolve_field(self, table_id: str, field_id: str, role: str) -> ResolvedPermission:
        """
        Effective read/write/delete flags of role on one field

        Raises:
            InvalidRoleException: Role outside the enumeration
            UnknownFieldException: Field is not part of the table
        """
        parsed_role = parse_role(role)
        if not await self._schema.field_exists(table_id, field_id):
            raise UnknownFieldException(table_id, field_id)

        if parsed_role.is_protected:
            return FULL_ACCESS

        snapshot = await self._cache.get(table_id)
        return self._decide(snapshot, field_id, parsed_role)

    async def resolve(self, table_id: str, field_id: str, role: str, action: str) -> bool:
        """
        Single allow/deny decision

        Raises:
            InvalidRoleException, InvalidActionException, UnknownFieldException
        """
        parsed_action = parse_action(action)
        permission = await self.resolve_field(table_id, field_id, role)
        allowed = permission.allows(parsed_action)

        record_check(parsed_action.value, allowed)
        logger.debug(
            f"Role {role} {'granted' if allowed else 'denied'} {parsed_action.value} "
            f"on {table_id}/{field_id}"
        )
        return allowed

    async def resolve_all(self, table_id: str, role: str) -> Dict[str, ResolvedPermission]:
        """
        Effective permissions of role on every field of the table

        Returns:
            Mapping field_id -> ResolvedPermission in schema order
        """
        parsed_role = parse_role(role)
        field_ids = await self._schema.list_fields(table_id)
        snapshot = await self._cache.get(table_id)
        return {
            field_id: self._decide(snapshot, field_id, parsed_role)
            for field_id in field_ids
        }

    async def visible_fields(self, table_id: str, role: str) -> Dict[str, ResolvedPermission]:
        """resolve_all without the fields the role may not read"""
        resolved = await self.resolve_all(table_id, role)
        return {
            field_id: permission
            for field_id, permission in resolved.items()
            if permission.can_read
        }

    async def filter_fields(
        self,
        fields: Iterable[str],
        table_id: str,
        role: str,
        action: str,
    ) -> List[str]:
        """
        Fields on which role may perform action, in input order

        Stateless: repeated calls give identical results until the table's
        overrides are mutated.

        Raises:
            InvalidRoleException, InvalidActionException, UnknownFieldException
        """
        parsed_role = parse_role(role)
        parsed_action: Action = parse_action(action)
        requested = list(fields)

        known = set(await self._schema.list_fields(table_id))
        for field_id in requested:
            if field_id not in known:
                raise UnknownFieldException(table_id, field_id)

        snapshot = await self._cache.get(table_id)
        return [
            field_id
            for field_id in requested
            if self._decide(snapshot, field_id, parsed_role).allows(parsed_action)
        ]
