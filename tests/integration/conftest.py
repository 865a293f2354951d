"""
Conftest for integration tests
SQLite (aiosqlite) database seeded with a table schema and its members
"""

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldperm.core.security import create_access_token
from fieldperm.db import session as db_session
from fieldperm.db.models import Field, TableMember
from fieldperm.services.permissions import (
    FieldOverrideStore,
    FieldPermissionService,
    SqlSchemaProvider,
    set_permission_service,
)

TABLE_ID = "tbl_employees"
FIELDS = ["fld_name", "fld_email", "fld_salary"]
MEMBERS = {
    "u_owner": "owner",
    "u_admin": "admin",
    "u_editor": "editor",
    "u_viewer": "viewer",
    "u_legacy": "superuser",
}


@pytest_asyncio.fixture
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh database file per test with the collaborator tables seeded"""
    await db_session.init_db(f"sqlite+aiosqlite:///{tmp_path / 'fieldperm.db'}", create_tables=True)
    maker = db_session.get_session_maker()

    async with maker() as session:
        async with session.begin():
            for index, field_id in enumerate(FIELDS):
                session.add(Field(id=field_id, table_id=TABLE_ID, name=field_id[4:], order_index=index))
            session.add(Field(id="fld_other", table_id="tbl_other", name="other", order_index=0))
            for user_id, role in MEMBERS.items():
                session.add(TableMember(table_id=TABLE_ID, user_id=user_id, role=role))

    yield maker

    await db_session.close_db()


@pytest.fixture
def table_id() -> str:
    return TABLE_ID


@pytest.fixture
def sql_schema(session_maker) -> SqlSchemaProvider:
    return SqlSchemaProvider(session_maker)


@pytest.fixture
def sql_store(session_maker, sql_schema) -> FieldOverrideStore:
    return FieldOverrideStore(session_maker, sql_schema)


@pytest_asyncio.fixture
async def sql_service(session_maker) -> AsyncGenerator[FieldPermissionService, None]:
    """Database-backed service installed as the global instance"""
    service = FieldPermissionService.from_session_maker(session_maker)
    set_permission_service(service)
    yield service
    set_permission_service(None)


@pytest_asyncio.fixture
async def client(sql_service) -> AsyncGenerator[AsyncClient, None]:
    """
    Test HTTP client for FastAPI app
    Uses ASGI transport for testing without running server
    """
    from fieldperm.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


def auth_headers(user_id: str) -> Dict[str, str]:
    """Bearer header for a user"""
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def owner_headers() -> Dict[str, str]:
    return auth_headers("u_owner")


@pytest.fixture
def editor_headers() -> Dict[str, str]:
    return auth_headers("u_editor")


@pytest.fixture
def viewer_headers() -> Dict[str, str]:
    return auth_headers("u_viewer")


@pytest.fixture
def headers_for():
    """Factory building a Bearer header for any user ID"""
    return auth_headers
