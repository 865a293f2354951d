"""
Field Permission Service
Boundary operations consumed by the API and by the record and schema services
"""

from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldperm.core.logging import get_logger
from fieldperm.services.permissions.cache import PermissionCache
from fieldperm.services.permissions.models import (
    FieldOverride,
    OverrideChange,
    PermissionFlags,
    ResolvedPermission,
)
from fieldperm.services.permissions.mutator import BatchMutator
from fieldperm.services.permissions.providers import (
    IdentityProvider,
    SchemaProvider,
    SqlIdentityProvider,
    SqlSchemaProvider,
)
from fieldperm.services.permissions.resolver import PermissionResolver
from fieldperm.services.permissions.store import FieldOverrideStore
from fieldperm.services.permissions.templates import DEFAULT_TEMPLATE, build_template_changes

logger = get_logger(__name__)

# Global permission service instance
_permission_service: Optional["FieldPermissionService"] = None


class FieldPermissionService:
    """
    Facade wiring store, cache, resolver and mutator together

    Provides:
    - GetFieldPermissions / SetFieldPermission / BatchSetFieldPermissions
    - ResetFieldPermissions / CheckPermission
    - effective permissions, field filtering, templates and the
      field-deletion cascade
    """

    def __init__(
        self,
        store: FieldOverrideStore,
        schema: SchemaProvider,
        identity: IdentityProvider,
    ):
        self.store = store
        self.schema = schema
        self.identity = identity
        self.cache = PermissionCache(store)
        self.resolver = PermissionResolver(self.cache, schema)
        self.mutator = BatchMutator(store, self.cache, schema)
        logger.debug("Field permission service created")

    @classmethod
    def from_session_maker(cls, session_maker: async_sessionmaker[AsyncSession]) -> "FieldPermissionService":
        """Build a service backed entirely by the SQL database"""
        schema = SqlSchemaProvider(session_maker)
        return cls(
            store=FieldOverrideStore(session_maker, schema),
            schema=schema,
            identity=SqlIdentityProvider(session_maker),
        )

    async def get_field_permissions(self, table_id: str) -> List[FieldOverride]:
        """Raw overrides of a table, without default-derived values"""
        snapshot = await self.cache.get(table_id)
        return sorted(snapshot, key=lambda o: (o.field_id, o.role.rank))

    async def set_field_permission(
        self,
        table_id: str,
        field_id: str,
        role: str,
        can_read: bool,
        can_write: bool,
        can_delete: bool,
    ) -> FieldOverride:
        flags = PermissionFlags(can_read=can_read, can_write=can_write, can_delete=can_delete)
        return await self.mutator.apply_one(table_id, field_id, role, flags)

    async def batch_set_field_permissions(
        self,
        table_id: str,
        changes: Sequence[OverrideChange],
    ) -> List[FieldOverride]:
        return await self.mutator.apply_batch(table_id, changes)

    async def reset_field_permissions(self, table_id: str) -> int:
        return await self.mutator.reset_to_default(table_id)

    async def clear_field_permissions(
        self,
        table_id: str,
        roles: Optional[Iterable[str]] = None,
    ) -> List[FieldOverride]:
        return await self.mutator.clear_all(table_id, roles)

    async def apply_template(self, table_id: str, name: str) -> List[FieldOverride]:
        """
        Apply a named template to every field of the table

        The default template resets the table; the others are written as
        one atomic batch.
        """
        if name == DEFAULT_TEMPLATE:
            await self.mutator.reset_to_default(table_id)
            return []

        field_ids = await self.schema.list_fields(table_id)
        changes = build_template_changes(name, field_ids)
        return await self.mutator.apply_batch(table_id, changes)

    async def handle_field_deleted(self, table_id: str, field_id: str) -> int:
        """Cascade hook called by the schema service after deleting a field"""
        return await self.mutator.remove_field(table_id, field_id)

    async def check_permission(self, table_id: str, field_id: str, role: str, action: str) -> bool:
        return await self.resolver.resolve(table_id, field_id, role, action)

    async def get_effective_permissions(
        self,
        table_id: str,
        role: str,
        readable_only: bool = False,
    ) -> Dict[str, ResolvedPermission]:
        if readable_only:
            return await self.resolver.visible_fields(table_id, role)
        return await self.resolver.resolve_all(table_id, role)

    async def filter_fields(
        self,
        fields: Iterable[str],
        table_id: str,
        role: str,
        action: str,
    ) -> List[str]:
        return await self.resolver.filter_fields(fields, table_id, role, action)

    async def get_user_role(self, user_id: str, table_id: str) -> Optional[str]:
        return await self.identity.get_role(user_id, table_id)

    async def shutdown(self) -> None:
        """Drop all cached state"""
        await self.cache.invalidate_all()


def get_permission_service() -> FieldPermissionService:
    """
    Get the global permission service instance

    Returns:
        FieldPermissionService bound to the initialized database
    """
    global _permission_service
    if _permission_service is None:
        from fieldperm.db.session import get_session_maker

        _permission_service = FieldPermissionService.from_session_maker(get_session_maker())
    return _permission_service


def set_permission_service(service: Optional[FieldPermissionService]) -> None:
    """Replace (or clear, with None) the global permission service"""
    global _permission_service
    _permission_service = service


async def close_permission_service() -> None:
    """Shut down and drop the global permission service, if one was created"""
    global _permission_service
    if _permission_service is not None:
        await _permission_service.shutdown()
        _permission_service = None
