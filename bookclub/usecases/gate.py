"""
Role gate for administrative operations.

An AdminOperation pairs a coroutine with the fixed set of roles allowed to run
it. The check is set membership, not seniority: OWNER_ONLY does not admit
ADMIN even though ADMIN outranks MEMBER.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Generic, TypeVar

from bookclub.errors import Unauthorized
from bookclub.models import Role
from bookclub.result import Result

logger = logging.getLogger("usecases.gate")

P = TypeVar("P")
T = TypeVar("T")

OWNER_ONLY: FrozenSet[Role] = frozenset({Role.OWNER})
ADMIN_AND_ABOVE: FrozenSet[Role] = frozenset({Role.OWNER, Role.ADMIN})


@dataclass(frozen=True)
class AdminOperation(Generic[P, T]):
    """
    A named, role-gated operation.

    Usage:
        rename = AdminOperation("update_club", OWNER_ONLY, do_rename)
        result = await rename(UpdateClubParams(...), acting_role=Role.ADMIN)
        # -> Result.failure(Unauthorized), do_rename never called
    """
    name: str
    required_roles: FrozenSet[Role]
    execute: Callable[[P], Awaitable[Result[T]]]

    def permits(self, role: Role) -> bool:
        return role in self.required_roles

    async def __call__(self, params: P, acting_role: Role) -> Result[T]:
        return await authorize_then_run(self, params, acting_role)


async def authorize_then_run(operation: AdminOperation[P, T], params: P, acting_role: Role) -> Result[T]:
    """Reject without any I/O unless acting_role is in the operation's role set."""
    if not operation.permits(acting_role):
        allowed = ", ".join(sorted(role.value for role in operation.required_roles))
        logger.info(f"Denied {operation.name} for role {acting_role.value} (requires {allowed})")
        return Result.failure(
            Unauthorized(f"Role '{acting_role.value}' may not {operation.name.replace('_', ' ')}")
        )
    logger.debug(f"Running {operation.name} as {acting_role.value}")
    return await operation.execute(params)

