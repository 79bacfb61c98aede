"""
Tests for the role gate.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from bookclub.errors import Unauthorized
from bookclub.models import Role
from bookclub.result import Result
from bookclub.usecases.gate import ADMIN_AND_ABOVE, OWNER_ONLY, AdminOperation, authorize_then_run


@pytest.fixture
def execute():
    return AsyncMock(return_value=Result.success("done"))


class TestRoleSets:

    def test_owner_only(self):
        assert OWNER_ONLY == frozenset({Role.OWNER})

    def test_admin_and_above(self):
        assert ADMIN_AND_ABOVE == frozenset({Role.OWNER, Role.ADMIN})


class TestAuthorizeThenRun:

    @pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
    def test_allowed_roles_execute(self, execute, role):
        operation = AdminOperation("create_discussion", ADMIN_AND_ABOVE, execute)

        result = asyncio.run(authorize_then_run(operation, {"session_id": "s1"}, role))

        assert result.value == "done"
        execute.assert_awaited_once_with({"session_id": "s1"})

    def test_member_rejected_without_executing(self, execute):
        operation = AdminOperation("create_discussion", ADMIN_AND_ABOVE, execute)

        result = asyncio.run(authorize_then_run(operation, {}, Role.MEMBER))

        assert isinstance(result.error, Unauthorized)
        execute.assert_not_awaited()

    def test_membership_not_hierarchy(self, execute):
        """ADMIN outranks MEMBER but is still outside OWNER_ONLY."""
        operation = AdminOperation("delete_club", OWNER_ONLY, execute)

        result = asyncio.run(operation({}, acting_role=Role.ADMIN))

        assert isinstance(result.error, Unauthorized)
        assert "delete club" in result.error.message
        execute.assert_not_awaited()

    def test_call_shorthand(self, execute):
        operation = AdminOperation("delete_club", OWNER_ONLY, execute)

        result = asyncio.run(operation({}, acting_role=Role.OWNER))

        assert result.is_success

    def test_permits(self, execute):
        operation = AdminOperation("remove_member", OWNER_ONLY, execute)

        assert operation.permits(Role.OWNER)
        assert not operation.permits(Role.ADMIN)
        assert not operation.permits(Role.MEMBER)
