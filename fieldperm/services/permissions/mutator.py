"""
Batch Mutator
Validates and atomically applies override changes, then invalidates the cache
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from fieldperm.core.exceptions import (
    AppException,
    BatchValidationException,
    InvalidRoleException,
    ProtectedRoleException,
    UnknownFieldException,
)
from fieldperm.core.logging import get_logger
from fieldperm.core.roles import CONFIGURABLE_ROLES, Role, parse_role
from fieldperm.monitoring import track_mutation
from fieldperm.services.permissions.cache import PermissionCache
from fieldperm.services.permissions.models import FieldOverride, OverrideChange, PermissionFlags
from fieldperm.services.permissions.providers import SchemaProvider
from fieldperm.services.permissions.store import FieldOverrideStore, OverrideWrite

logger = get_logger(__name__)


class BatchMutator:
    """
    Single entry point for override mutations

    Validation runs before any write. Every write is followed by an
    invalidation of the table's cache entry before control returns to the
    caller, including when the write fails, so the next read reloads from
    the store.
    """

    def __init__(
        self,
        store: FieldOverrideStore,
        cache: PermissionCache,
        schema: SchemaProvider,
    ):
        self._store = store
        self._cache = cache
        self._schema = schema

    @staticmethod
    def _entry_error(index: int, change: OverrideChange, error: AppException) -> Dict[str, Any]:
        return {
            "index": index,
            "field_id": change.field_id,
            "role": change.role,
            "code": error.code,
            "message": error.message,
        }

    async def validate_batch(self, table_id: str, changes: Sequence[OverrideChange]) -> List[OverrideWrite]:
        """
        Check every change of a batch

        Returns:
            Parsed (field_id, role, flags) writes in input order

        Raises:
            BatchValidationException: Listing every offending entry
        """
        known_fields: Set[str] = set(await self._schema.list_fields(table_id))
        writes: List[OverrideWrite] = []
        errors: List[Dict[str, Any]] = []

        for index, change in enumerate(changes):
            try:
                role = parse_role(change.role)
                if role.is_protected:
                    raise ProtectedRoleException(role.value, details={"field_id": change.field_id})
                if change.field_id not in known_fields:
                    raise UnknownFieldException(table_id, change.field_id)
            except (InvalidRoleException, ProtectedRoleException, UnknownFieldException) as e:
                errors.append(self._entry_error(index, change, e))
                continue
            writes.append((change.field_id, role, change.flags))

        if errors:
            logger.warning(f"Rejected batch of {len(changes)} changes for table {table_id}: {len(errors)} invalid")
            raise BatchValidationException(errors)

        return writes

    @track_mutation("apply_one")
    async def apply_one(
        self,
        table_id: str,
        field_id: str,
        role: str,
        flags: PermissionFlags,
    ) -> FieldOverride:
        """
        Create or replace one override

        Raises:
            InvalidRoleException, ProtectedRoleException, UnknownFieldException,
            StoreUnavailableException
        """
        try:
            override = await self._store.upsert(table_id, field_id, role, flags)
        finally:
            await self._cache.invalidate(table_id)

        logger.info(f"Set {role} permissions on {table_id}/{field_id}: {flags.as_dict()}")
        return override

    @track_mutation("apply_batch")
    async def apply_batch(self, table_id: str, changes: Sequence[OverrideChange]) -> List[FieldOverride]:
        """
        Apply a set of changes all-or-nothing

        Re-submitting the same batch after a failure yields the same end
        state.

        Raises:
            BatchValidationException: Nothing was written
            StoreUnavailableException: The transaction was rolled back
        """
        writes = await self.validate_batch(table_id, changes)
        if not writes:
            return []

        try:
            written = await self._store.upsert_many(table_id, writes)
        finally:
            await self._cache.invalidate(table_id)

        logger.info(f"Applied batch of {len(writes)} changes to table {table_id}")
        return written

    @track_mutation("reset_to_default")
    async def reset_to_default(self, table_id: str) -> int:
        """
        Remove every override so resolution falls back to the default policy

        Returns:
            Number of overrides removed
        """
        try:
            removed = await self._store.remove_all(table_id)
        finally:
            await self._cache.invalidate(table_id)

        logger.info(f"Reset field permissions of table {table_id} to default")
        return removed

    @track_mutation("clear_all")
    async def clear_all(self, table_id: str, roles: Optional[Iterable[str]] = None) -> List[FieldOverride]:
        """
        Write an explicit all-false override for every field and role

        Unlike reset_to_default, the denials are persisted. Protected roles
        in `roles` are skipped since they cannot be overridden.

        Raises:
            InvalidRoleException: If any role is outside the enumeration
        """
        parsed: List[Role] = []
        for raw in (roles if roles is not None else CONFIGURABLE_ROLES):
            role = parse_role(raw)
            if role.is_protected:
                logger.debug(f"clear_all: skipping protected role {role.value}")
                continue
            if role not in parsed:
                parsed.append(role)

        field_ids = await self._schema.list_fields(table_id)
        denied = PermissionFlags.denied()
        writes: List[OverrideWrite] = [
            (field_id, role, denied)
            for field_id in field_ids
            for role in parsed
        ]
        if not writes:
            return []

        try:
            written = await self._store.upsert_many(table_id, writes)
        finally:
            await self._cache.invalidate(table_id)

        logger.info(
            f"Cleared permissions of {[r.value for r in parsed]} on {len(field_ids)} fields of table {table_id}"
        )
        return written

    @track_mutation("remove_field")
    async def remove_field(self, table_id: str, field_id: str) -> int:
        """Drop every override of a deleted field"""
        try:
            removed = await self._store.remove_field(table_id, field_id)
        finally:
            await self._cache.invalidate(table_id)

        logger.info(f"Removed permissions of deleted field {field_id} in table {table_id}")
        return removed
