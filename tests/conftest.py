"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-field-permission-service-0123456789")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

import pytest

from fieldperm.core.exceptions import ProtectedRoleException, StoreUnavailableException
from fieldperm.core.roles import Role
from fieldperm.services.permissions import (
    BatchMutator,
    FieldOverride,
    FieldPermissionService,
    IdentityProvider,
    PermissionCache,
    PermissionFlags,
    PermissionResolver,
    SchemaProvider,
)
from fieldperm.services.permissions.store import OverrideWrite, check_override_target


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (medium speed)"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add default markers"""
    for item in items:
        # Add markers based on test file path
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ============================================
# IN-MEMORY COLLABORATORS
# ============================================

class InMemorySchemaProvider(SchemaProvider):
    """Schema provider backed by a dict of table_id -> ordered field IDs"""

    def __init__(self, tables: Dict[str, List[str]]):
        self.tables = {table_id: list(fields) for table_id, fields in tables.items()}

    async def field_exists(self, table_id: str, field_id: str) -> bool:
        return field_id in self.tables.get(table_id, [])

    async def list_fields(self, table_id: str) -> List[str]:
        return list(self.tables.get(table_id, []))


class InMemoryIdentityProvider(IdentityProvider):
    """Identity provider backed by a dict of (table_id, user_id) -> role"""

    def __init__(self, members: Dict[Tuple[str, str], str]):
        self.members = dict(members)

    async def get_role(self, user_id: str, table_id: str) -> Optional[str]:
        return self.members.get((table_id, user_id))


class InMemoryOverrideStore:
    """
    Drop-in replacement for FieldOverrideStore keeping rows in a dict

    Counts loads so tests can observe cache behavior, and can be told to
    fail the next write to exercise rollback paths.
    """

    def __init__(self, schema: SchemaProvider):
        self._schema = schema
        self.rows: Dict[Tuple[str, str, Role], PermissionFlags] = {}
        self.load_count = 0
        self.fail_writes = False

    def _check_available(self, operation: str) -> None:
        if self.fail_writes:
            raise StoreUnavailableException(message="store down", operation=operation)

    async def load(self, table_id: str) -> FrozenSet[FieldOverride]:
        self.load_count += 1
        return frozenset(
            FieldOverride(table_id=t, field_id=f, role=r, **flags.model_dump())
            for (t, f, r), flags in self.rows.items()
            if t == table_id
        )

    async def upsert(self, table_id: str, field_id: str, role: str, flags: PermissionFlags) -> FieldOverride:
        parsed = await check_override_target(self._schema, table_id, field_id, role)
        written = await self.upsert_many(table_id, [(field_id, parsed, flags)])
        return written[0]

    async def upsert_many(self, table_id: str, changes: Sequence[OverrideWrite]) -> List[FieldOverride]:
        for _, role, _ in changes:
            if role.is_protected:
                raise ProtectedRoleException(role.value)
        self._check_available("upsert")

        pending = {(field_id, role): flags for field_id, role, flags in changes}
        for (field_id, role), flags in pending.items():
            self.rows[(table_id, field_id, role)] = flags
        return [
            FieldOverride(table_id=table_id, field_id=f, role=r, **flags.model_dump())
            for (f, r), flags in pending.items()
        ]

    async def remove_all(self, table_id: str) -> int:
        self._check_available("remove_all")
        keys = [k for k in self.rows if k[0] == table_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def remove_field(self, table_id: str, field_id: str) -> int:
        self._check_available("remove_field")
        keys = [k for k in self.rows if k[0] == table_id and k[1] == field_id]
        for key in keys:
            del self.rows[key]
        return len(keys)


# ============================================
# TEST DATA FIXTURES
# ============================================

TABLE_ID = "tbl_customers"
FIELDS = ["fld_name", "fld_email", "fld_salary"]


@pytest.fixture
def table_id() -> str:
    return TABLE_ID


@pytest.fixture
def schema() -> InMemorySchemaProvider:
    return InMemorySchemaProvider({TABLE_ID: FIELDS, "tbl_empty": []})


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider({
        (TABLE_ID, "u_owner"): "owner",
        (TABLE_ID, "u_admin"): "admin",
        (TABLE_ID, "u_editor"): "editor",
        (TABLE_ID, "u_viewer"): "viewer",
    })


@pytest.fixture
def store(schema) -> InMemoryOverrideStore:
    return InMemoryOverrideStore(schema)


@pytest.fixture
def cache(store) -> PermissionCache:
    return PermissionCache(store)


@pytest.fixture
def resolver(cache, schema) -> PermissionResolver:
    return PermissionResolver(cache, schema)


@pytest.fixture
def mutator(store, cache, schema) -> BatchMutator:
    return BatchMutator(store, cache, schema)


@pytest.fixture
def service(store, schema, identity) -> FieldPermissionService:
    return FieldPermissionService(store, schema, identity)
