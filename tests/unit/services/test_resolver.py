#!/usr/bin/env python3
"""
Unit Tests for the Permission Resolver
Tests for fieldperm/services/permissions/resolver.py
"""

import pytest

from fieldperm.core.exceptions import (
    InvalidActionException,
    InvalidRoleException,
    UnknownFieldException,
)
from fieldperm.core.roles import Action, Role
from fieldperm.services.permissions import PermissionFlags
from fieldperm.services.permissions.policy import default_allows

ACTIONS = [a.value for a in Action]


class TestProtectedRoles:
    """Owner and admin are always fully permitted"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["owner", "admin"])
    async def test_always_allowed_without_overrides(self, resolver, table_id, role):
        for field_id in ["fld_name", "fld_email", "fld_salary"]:
            for action in ACTIONS:
                assert await resolver.resolve(table_id, field_id, role, action) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
    async def test_stored_overrides_are_ignored(self, resolver, store, table_id, role):
        """Test a denial row for a protected role (e.g. written out of band) has no effect"""
        store.rows[(table_id, "fld_salary", role)] = PermissionFlags.denied()

        for action in ACTIONS:
            assert await resolver.resolve(table_id, "fld_salary", role.value, action) is True

    @pytest.mark.asyncio
    async def test_protected_role_skips_cache(self, resolver, store, table_id):
        await resolver.resolve(table_id, "fld_name", "owner", "delete")
        assert store.load_count == 0


class TestDefaultFallback:
    """Non-protected roles without overrides follow the default policy"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["editor", "viewer"])
    async def test_matches_default_policy(self, resolver, table_id, role):
        for action in Action:
            expected = default_allows(role, action)
            assert await resolver.resolve(table_id, "fld_email", role, action.value) is expected

    @pytest.mark.asyncio
    async def test_editor_defaults(self, resolver, table_id):
        """Test editor may write but not delete when nothing is configured"""
        assert await resolver.resolve(table_id, "fld_name", "editor", "write") is True
        assert await resolver.resolve(table_id, "fld_name", "editor", "delete") is False


class TestOverridePrecedence:
    """An override replaces the default for its (field, role)"""

    @pytest.mark.asyncio
    async def test_override_beats_default(self, resolver, store, table_id):
        store.rows[(table_id, "fld_salary", Role.VIEWER)] = PermissionFlags.denied()

        assert await resolver.resolve(table_id, "fld_salary", "viewer", "read") is False
        # Other fields and roles are untouched
        assert await resolver.resolve(table_id, "fld_name", "viewer", "read") is True
        assert await resolver.resolve(table_id, "fld_salary", "editor", "read") is True

    @pytest.mark.asyncio
    async def test_override_can_grant_beyond_default(self, resolver, store, table_id):
        store.rows[(table_id, "fld_name", Role.VIEWER)] = PermissionFlags.granted()

        assert await resolver.resolve(table_id, "fld_name", "viewer", "delete") is True


class TestInvalidInput:
    """Invalid queries raise instead of defaulting"""

    @pytest.mark.asyncio
    async def test_invalid_role(self, resolver, table_id):
        with pytest.raises(InvalidRoleException):
            await resolver.resolve(table_id, "fld_name", "guest", "read")

    @pytest.mark.asyncio
    async def test_invalid_action(self, resolver, table_id):
        with pytest.raises(InvalidActionException):
            await resolver.resolve(table_id, "fld_name", "viewer", "update")

    @pytest.mark.asyncio
    async def test_unknown_field(self, resolver, table_id):
        with pytest.raises(UnknownFieldException):
            await resolver.resolve(table_id, "fld_missing", "viewer", "read")

    @pytest.mark.asyncio
    async def test_unknown_field_for_protected_role(self, resolver, table_id):
        with pytest.raises(UnknownFieldException):
            await resolver.resolve(table_id, "fld_missing", "owner", "read")


class TestResolveAll:
    """Test resolve_all and visible_fields"""

    @pytest.mark.asyncio
    async def test_schema_order_and_values(self, resolver, store, table_id):
        store.rows[(table_id, "fld_salary", Role.VIEWER)] = PermissionFlags.denied()

        resolved = await resolver.resolve_all(table_id, "viewer")

        assert list(resolved) == ["fld_name", "fld_email", "fld_salary"]
        assert resolved["fld_name"].can_read is True
        assert resolved["fld_salary"].can_read is False

    @pytest.mark.asyncio
    async def test_empty_table(self, resolver):
        assert await resolver.resolve_all("tbl_empty", "viewer") == {}

    @pytest.mark.asyncio
    async def test_visible_fields(self, resolver, store, table_id):
        store.rows[(table_id, "fld_salary", Role.VIEWER)] = PermissionFlags.denied()

        visible = await resolver.visible_fields(table_id, "viewer")

        assert list(visible) == ["fld_name", "fld_email"]

    @pytest.mark.asyncio
    async def test_owner_sees_everything(self, resolver, store, table_id):
        store.rows[(table_id, "fld_salary", Role.OWNER)] = PermissionFlags.denied()

        resolved = await resolver.resolve_all(table_id, "owner")

        assert all(p.can_read and p.can_write and p.can_delete for p in resolved.values())


class TestFilterFields:
    """Test filter_fields"""

    @pytest.mark.asyncio
    async def test_preserves_input_order(self, resolver, store, table_id):
        store.rows[(table_id, "fld_email", Role.VIEWER)] = PermissionFlags.denied()

        allowed = await resolver.filter_fields(
            ["fld_salary", "fld_email", "fld_name"], table_id, "viewer", "read"
        )

        assert allowed == ["fld_salary", "fld_name"]

    @pytest.mark.asyncio
    async def test_repeatable(self, resolver, table_id):
        fields = ["fld_name", "fld_email"]
        first = await resolver.filter_fields(fields, table_id, "editor", "delete")
        second = await resolver.filter_fields(fields, table_id, "editor", "delete")

        assert first == second == []

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, resolver, table_id):
        with pytest.raises(UnknownFieldException):
            await resolver.filter_fields(["fld_name", "fld_nope"], table_id, "viewer", "read")

    @pytest.mark.asyncio
    async def test_accepts_generator(self, resolver, table_id):
        allowed = await resolver.filter_fields(
            (f for f in ["fld_name"]), table_id, "viewer", "read"
        )
        assert allowed == ["fld_name"]
