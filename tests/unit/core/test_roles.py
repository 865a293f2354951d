#!/usr/bin/env python3
"""
Unit Tests for Role Hierarchy
Tests for fieldperm/core/roles.py
"""

import pytest

from fieldperm.core.exceptions import InvalidActionException, InvalidRoleException
from fieldperm.core.roles import (
    CONFIGURABLE_ROLES,
    PROTECTED_ROLES,
    Action,
    Role,
    is_protected,
    is_valid_role,
    parse_action,
    parse_role,
)


class TestRoleEnum:
    """Test the closed role enumeration"""

    def test_values(self):
        """Test the four role values"""
        assert [r.value for r in Role] == ["owner", "admin", "editor", "viewer"]

    def test_rank_orders_hierarchy(self):
        """Test owner outranks admin outranks editor outranks viewer"""
        assert Role.OWNER.rank < Role.ADMIN.rank < Role.EDITOR.rank < Role.VIEWER.rank

    def test_protected_roles(self):
        """Test only owner and admin are protected"""
        assert PROTECTED_ROLES == {Role.OWNER, Role.ADMIN}
        assert Role.OWNER.is_protected
        assert Role.ADMIN.is_protected
        assert not Role.EDITOR.is_protected
        assert not Role.VIEWER.is_protected

    def test_configurable_roles(self):
        """Test configurable roles are the non-protected ones in order"""
        assert CONFIGURABLE_ROLES == (Role.EDITOR, Role.VIEWER)

    def test_role_compares_to_string(self):
        """Test str enum equality with raw values"""
        assert Role.EDITOR == "editor"


class TestIsValidRole:
    """Test is_valid_role"""

    @pytest.mark.parametrize("role", ["owner", "admin", "editor", "viewer", Role.VIEWER])
    def test_valid(self, role):
        assert is_valid_role(role) is True

    @pytest.mark.parametrize("role", ["Owner", "superuser", "", None, 1, " viewer"])
    def test_invalid(self, role):
        assert is_valid_role(role) is False


class TestIsProtected:
    """Test is_protected"""

    def test_protected(self):
        assert is_protected("owner") is True
        assert is_protected("admin") is True

    def test_not_protected(self):
        assert is_protected("editor") is False
        assert is_protected("viewer") is False

    def test_invalid_role_is_not_protected(self):
        """Test invalid roles are reported unprotected rather than raising"""
        assert is_protected("superuser") is False
        assert is_protected(None) is False


class TestParseRole:
    """Test parse_role"""

    def test_parse_valid(self):
        assert parse_role("editor") is Role.EDITOR
        assert parse_role(Role.ADMIN) is Role.ADMIN

    def test_parse_invalid_raises(self):
        with pytest.raises(InvalidRoleException) as exc_info:
            parse_role("guest")

        assert exc_info.value.code == "invalid_role"
        assert exc_info.value.details["role"] == "guest"


class TestParseAction:
    """Test parse_action"""

    def test_parse_valid(self):
        assert parse_action("read") is Action.READ
        assert parse_action("write") is Action.WRITE
        assert parse_action("delete") is Action.DELETE
        assert parse_action(Action.WRITE) is Action.WRITE

    @pytest.mark.parametrize("action", ["READ", "update", "", None])
    def test_parse_invalid_raises(self, action):
        with pytest.raises(InvalidActionException) as exc_info:
            parse_action(action)

        assert exc_info.value.code == "invalid_action"
        assert exc_info.value.status_code == 400
