"""
Field Override Store
Durable storage of per-(table, field, role) permission overrides
"""

import uuid
from typing import Callable, Dict, FrozenSet, List, Sequence, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldperm.core.exceptions import ProtectedRoleException, UnknownFieldException
from fieldperm.core.logging import get_logger
from fieldperm.core.roles import Role, is_valid_role, parse_role
from fieldperm.db.models import FieldPermission
from fieldperm.db.session import run_db_operation
from fieldperm.services.permissions.models import FieldOverride, PermissionFlags
from fieldperm.services.permissions.providers import SchemaProvider

logger = get_logger(__name__)

# (field_id, role, flags)
OverrideWrite = Tuple[str, Role, PermissionFlags]

# Columns of uq_field_permissions_table_field_role
UPSERT_KEY = ["table_id", "field_id", "role"]


def _dialect_insert(dialect_name: str) -> Callable:
    """INSERT construct supporting ON CONFLICT for the bound database"""
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert not supported for dialect: {dialect_name}")


async def check_override_target(
    schema: SchemaProvider,
    table_id: str,
    field_id: str,
    role: str,
) -> Role:
    """
    Validate the target of an override write

    Returns:
        The parsed, non-protected role

    Raises:
        InvalidRoleException: Role outside the enumeration
        ProtectedRoleException: Role is owner or admin
        UnknownFieldException: Field is not part of the table
    """
    parsed = parse_role(role)
    if parsed.is_protected:
        raise ProtectedRoleException(parsed.value, details={"field_id": field_id})
    if not await schema.field_exists(table_id, field_id):
        raise UnknownFieldException(table_id, field_id)
    return parsed


class FieldOverrideStore:
    """
    Table-scoped override storage on top of SQLAlchemy

    At most one row exists per (table_id, field_id, role); writes for an
    existing triple replace its flags in place (INSERT .. ON CONFLICT
    DO UPDATE), so concurrent writers never collide on the unique key.
    Multi-row writes run in a single transaction so partial batches are
    never visible.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        schema: SchemaProvider,
    ):
        self._session_maker = session_maker
        self._schema = schema

    async def load(self, table_id: str) -> FrozenSet[FieldOverride]:
        """All overrides of a table (empty set if none are configured)"""

        async def _query() -> List[FieldPermission]:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(FieldPermission).where(FieldPermission.table_id == table_id)
                )
                return list(result.scalars().all())

        rows = await run_db_operation("load", _query())

        overrides = set()
        for row in rows:
            if not is_valid_role(row.role):
                logger.warning(f"Ignoring override with invalid role {row.role!r} on {table_id}/{row.field_id}")
                continue
            overrides.add(FieldOverride.model_validate(row))

        logger.debug(f"Loaded {len(overrides)} overrides for table {table_id}")
        return frozenset(overrides)

    async def upsert(
        self,
        table_id: str,
        field_id: str,
        role: str,
        flags: PermissionFlags,
    ) -> FieldOverride:
        """
        Create or replace a single override

        Raises:
            InvalidRoleException, ProtectedRoleException, UnknownFieldException
        """
        parsed = await check_override_target(self._schema, table_id, field_id, role)
        written = await self.upsert_many(table_id, [(field_id, parsed, flags)])
        return written[0]

    async def upsert_many(
        self,
        table_id: str,
        changes: Sequence[OverrideWrite],
    ) -> List[FieldOverride]:
        """
        Create or replace several overrides in one transaction

        Entries are expected to be validated already; protected roles are
        still refused before anything is written. When the same (field,
        role) appears more than once, the last entry wins.
        """
        for _, role, _ in changes:
            if role.is_protected:
                raise ProtectedRoleException(role.value)

        pending: Dict[Tuple[str, Role], PermissionFlags] = {}
        for field_id, role, flags in changes:
            pending[(field_id, role)] = flags

        if not pending:
            return []

        async def _write() -> None:
            async with self._session_maker() as session:
                async with session.begin():
                    insert = _dialect_insert(session.get_bind().dialect.name)
                    for (field_id, role), flags in pending.items():
                        stmt = insert(FieldPermission).values(
                            id=uuid.uuid4(),
                            table_id=table_id,
                            field_id=field_id,
                            role=role.value,
                            can_read=flags.can_read,
                            can_write=flags.can_write,
                            can_delete=flags.can_delete,
                        )
                        stmt = stmt.on_conflict_do_update(
                            index_elements=UPSERT_KEY,
                            set_={
                                "can_read": stmt.excluded.can_read,
                                "can_write": stmt.excluded.can_write,
                                "can_delete": stmt.excluded.can_delete,
                                "updated_at": func.now(),
                            },
                        )
                        await session.execute(stmt)

        await run_db_operation("upsert", _write())
        logger.info(f"Wrote {len(pending)} overrides for table {table_id}")

        return [
            FieldOverride(
                table_id=table_id,
                field_id=field_id,
                role=role,
                can_read=flags.can_read,
                can_write=flags.can_write,
                can_delete=flags.can_delete,
            )
            for (field_id, role), flags in pending.items()
        ]

    async def remove_all(self, table_id: str) -> int:
        """Delete every override of a table; returns the number removed"""

        async def _delete() -> int:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(FieldPermission).where(FieldPermission.table_id == table_id)
                    )
                    return result.rowcount or 0

        removed = await run_db_operation("remove_all", _delete())
        logger.info(f"Removed {removed} overrides for table {table_id}")
        return removed

    async def remove_field(self, table_id: str, field_id: str) -> int:
        """Delete the overrides of one field across all roles"""

        async def _delete() -> int:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(FieldPermission).where(
                            FieldPermission.table_id == table_id,
                            FieldPermission.field_id == field_id,
                        )
                    )
                    return result.rowcount or 0

        removed = await run_db_operation("remove_field", _delete())
        logger.info(f"Removed {removed} overrides for field {field_id} of table {table_id}")
        return removed
