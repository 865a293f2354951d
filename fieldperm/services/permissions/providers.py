"""
Collaborator Providers
Schema and identity lookups the permission engine depends on
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldperm.core.logging import get_logger
from fieldperm.db.models import Field as FieldModel
from fieldperm.db.models import TableMember
from fieldperm.db.session import run_db_operation

logger = get_logger(__name__)


class SchemaProvider(ABC):
    """Answers questions about a table's fields"""

    @abstractmethod
    async def field_exists(self, table_id: str, field_id: str) -> bool:
        """True if field_id belongs to table_id"""
        pass

    @abstractmethod
    async def list_fields(self, table_id: str) -> List[str]:
        """Field IDs of table_id in schema order (empty for unknown tables)"""
        pass


class IdentityProvider(ABC):
    """Supplies a caller's effective role on a table"""

    @abstractmethod
    async def get_role(self, user_id: str, table_id: str) -> Optional[str]:
        """Raw role string, or None if the user has no access to the table"""
        pass


class SqlSchemaProvider(SchemaProvider):
    """Reads the `fields` table maintained by the schema service"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def field_exists(self, table_id: str, field_id: str) -> bool:
        async def _query() -> bool:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(FieldModel.id).where(
                        FieldModel.table_id == table_id,
                        FieldModel.id == field_id,
                    )
                )
                return result.scalar_one_or_none() is not None

        return await run_db_operation("field_exists", _query())

    async def list_fields(self, table_id: str) -> List[str]:
        async def _query() -> List[str]:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(FieldModel.id)
                    .where(FieldModel.table_id == table_id)
                    .order_by(FieldModel.order_index, FieldModel.id)
                )
                return list(result.scalars().all())

        return await run_db_operation("list_fields", _query())


class SqlIdentityProvider(IdentityProvider):
    """Reads the `table_members` table maintained by the membership service"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get_role(self, user_id: str, table_id: str) -> Optional[str]:
        async def _query() -> Optional[str]:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(TableMember.role).where(
                        TableMember.table_id == table_id,
                        TableMember.user_id == user_id,
                    )
                )
                return result.scalar_one_or_none()

        role = await run_db_operation("get_role", _query())
        logger.debug(f"User {user_id} has role {role} on table {table_id}")
        return role
