"""
Role-gated club administration.

Discussion and membership edits are fetch-modify-submit: the current
aggregate is fetched fresh from the backend, the whole collection is rebuilt
in memory and submitted as a full replacement. Edits of the same aggregate
are queued behind a per-aggregate lock so two of them never start from the
same base collection.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

from bookclub.cache.locks import AggregateLocks
from bookclub.errors import InvalidOperation
from bookclub.models import Book, Club, Discussion, Member, Role, Session
from bookclub.repositories import ClubRepository, MemberRepository, SessionRepository
from bookclub.result import Result
from .gate import ADMIN_AND_ABOVE, OWNER_ONLY, AdminOperation

logger = logging.getLogger("usecases.clubs")


# ===== PARAMS =====

@dataclass
class CreateDiscussionParams:
    session_id: str
    title: str
    date: datetime
    location: Optional[str] = None


@dataclass
class UpdateDiscussionParams:
    """None fields keep the discussion's current value."""
    session_id: str
    discussion_id: str
    title: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None


@dataclass
class DeleteDiscussionParams:
    session_id: str
    discussion_id: str


@dataclass
class UpdateMemberRoleParams:
    club_id: str
    member_id: str
    acting_member_id: str
    new_role: Role


@dataclass
class RemoveMemberParams:
    club_id: str
    member_id: str
    acting_member_id: str


@dataclass
class CreateSessionParams:
    club_id: str
    book: Book
    due_date: Optional[datetime] = None


@dataclass
class UpdateSessionParams:
    session_id: str
    club_id: Optional[str] = None
    book: Optional[Book] = None
    due_date: Optional[datetime] = None


@dataclass
class DeleteSessionParams:
    session_id: str
    club_id: Optional[str] = None


@dataclass
class UpdateClubParams:
    club_id: str
    name: str
    server_id: Optional[str] = None


@dataclass
class DeleteClubParams:
    club_id: str
    server_id: Optional[str] = None


# ===== OPERATIONS =====

class ClubAdminOperations:
    """
    The ten gated club operations, bound to one set of repositories.

    Each public attribute is an AdminOperation; call it with its params and
    the acting member's role in the club:

        ops = ClubAdminOperations(clubs, members, sessions)
        result = await ops.remove_member(
            RemoveMemberParams(club_id="7", member_id="12", acting_member_id="3"),
            acting_role=Role.OWNER,
        )
    """

    def __init__(
        self,
        clubs: ClubRepository,
        members: MemberRepository,
        sessions: SessionRepository,
        locks: Optional[AggregateLocks] = None,
    ):
        self.clubs = clubs
        self.members = members
        self.sessions = sessions
        self.locks = locks or AggregateLocks()

        self.create_discussion = AdminOperation("create_discussion", ADMIN_AND_ABOVE, self._create_discussion)
        self.update_discussion = AdminOperation("update_discussion", ADMIN_AND_ABOVE, self._update_discussion)
        self.delete_discussion = AdminOperation("delete_discussion", ADMIN_AND_ABOVE, self._delete_discussion)
        self.update_member_role = AdminOperation("update_member_role", ADMIN_AND_ABOVE, self._update_member_role)
        self.remove_member = AdminOperation("remove_member", OWNER_ONLY, self._remove_member)
        self.create_session = AdminOperation("create_session", OWNER_ONLY, self._create_session)
        self.update_session = AdminOperation("update_session", OWNER_ONLY, self._update_session)
        self.delete_session = AdminOperation("delete_session", OWNER_ONLY, self._delete_session)
        self.update_club = AdminOperation("update_club", OWNER_ONLY, self._update_club)
        self.delete_club = AdminOperation("delete_club", OWNER_ONLY, self._delete_club)

    @property
    def operations(self) -> List[AdminOperation]:
        return [
            self.create_discussion,
            self.update_discussion,
            self.delete_discussion,
            self.update_member_role,
            self.remove_member,
            self.create_session,
            self.update_session,
            self.delete_session,
            self.update_club,
            self.delete_club,
        ]

    # ----- discussions -----

    async def _create_discussion(self, params: CreateDiscussionParams) -> Result[Session]:
        async with self.locks.hold(f"session:{params.session_id}"):
            fetched = await self.sessions.get_session(params.session_id, force_refresh=True)
            if fetched.is_failure:
                logger.error(f"Failed to fetch session {params.session_id} before creating discussion")
                return fetched

            new_discussion = Discussion(
                id="",
                session_id=params.session_id,
                title=params.title,
                date=params.date,
                location=params.location,
            )
            discussions = fetched.value.discussions + [new_discussion]
            result = await self.sessions.update_session(params.session_id, discussions=discussions)

        if result.is_success:
            logger.info(f"Discussion created in session {params.session_id}")
        return result

    async def _update_discussion(self, params: UpdateDiscussionParams) -> Result[Session]:
        async with self.locks.hold(f"session:{params.session_id}"):
            fetched = await self.sessions.get_session(params.session_id, force_refresh=True)
            if fetched.is_failure:
                logger.error(f"Failed to fetch session {params.session_id} before updating discussion")
                return fetched

            current = fetched.value.discussions
            if not any(d.id == params.discussion_id for d in current):
                return Result.failure(InvalidOperation(
                    f"Discussion {params.discussion_id} is not part of session {params.session_id}"
                ))

            discussions = [
                replace(
                    d,
                    title=params.title if params.title is not None else d.title,
                    date=params.date if params.date is not None else d.date,
                    location=params.location if params.location is not None else d.location,
                )
                if d.id == params.discussion_id else d
                for d in current
            ]
            result = await self.sessions.update_session(params.session_id, discussions=discussions)

        if result.is_success:
            logger.info(f"Discussion {params.discussion_id} updated")
        return result

    async def _delete_discussion(self, params: DeleteDiscussionParams) -> Result[Session]:
        async with self.locks.hold(f"session:{params.session_id}"):
            fetched = await self.sessions.get_session(params.session_id, force_refresh=True)
            if fetched.is_failure:
                logger.error(f"Failed to fetch session {params.session_id} before deleting discussion")
                return fetched

            current = fetched.value.discussions
            remaining = [d for d in current if d.id != params.discussion_id]
            if len(remaining) == len(current):
                return Result.failure(InvalidOperation(
                    f"Discussion {params.discussion_id} is not part of session {params.session_id}"
                ))

            result = await self.sessions.update_session(
                params.session_id,
                discussions=remaining,
                discussion_ids_to_delete=[params.discussion_id],
            )

        if result.is_success:
            logger.info(f"Discussion {params.discussion_id} deleted")
        return result

    # ----- membership -----

    async def _update_member_role(self, params: UpdateMemberRoleParams) -> Result[Member]:
        if params.member_id == params.acting_member_id:
            return Result.failure(InvalidOperation("You cannot change your own role"))
        if params.new_role is Role.OWNER:
            return Result.failure(InvalidOperation("The owner role cannot be assigned"))

        async with self.locks.hold(f"member:{params.member_id}"):
            fetched = await self.members.get_member(params.member_id, force_refresh=True)
            if fetched.is_failure:
                logger.error(f"Failed to fetch member {params.member_id} before changing role")
                return fetched

            clubs = fetched.value.clubs or []
            if not any(club.id == params.club_id for club in clubs):
                return Result.failure(InvalidOperation(
                    f"Member {params.member_id} is not in club {params.club_id}"
                ))

            # Roles in other clubs are not part of the payload and stay as they are
            result = await self.members.update_member(
                params.member_id, club_roles={params.club_id: params.new_role.value}
            )

        if result.is_success:
            logger.info(f"Member {params.member_id} is now {params.new_role.value} in club {params.club_id}")
            await self.members.cache_membership(params.club_id, params.member_id, params.new_role)
            await self.clubs.invalidate(params.club_id)
        return result

    async def _remove_member(self, params: RemoveMemberParams) -> Result[Member]:
        if params.member_id == params.acting_member_id:
            return Result.failure(InvalidOperation("You cannot remove yourself from the club"))

        async with self.locks.hold(f"member:{params.member_id}"):
            fetched = await self.members.get_member(params.member_id, force_refresh=True)
            if fetched.is_failure:
                logger.error(f"Failed to fetch member {params.member_id} before removing from club")
                return fetched

            clubs = fetched.value.clubs
            if clubs is None:
                return Result.failure(InvalidOperation(
                    f"Club list for member {params.member_id} was not loaded"
                ))

            club_ids = [club.id for club in clubs if club.id != params.club_id]
            result = await self.members.update_member(params.member_id, club_ids=club_ids)

        if result.is_success:
            logger.info(f"Member {params.member_id} removed from club {params.club_id}")
            await self.members.evict_membership(params.club_id, params.member_id)
            await self.clubs.invalidate(params.club_id)
        return result

    # ----- sessions -----

    async def _create_session(self, params: CreateSessionParams) -> Result[Session]:
        result = await self.sessions.create_session(
            params.club_id, params.book, due_date=params.due_date
        )
        if result.is_success:
            logger.info(f"Session {result.value.id} created for club {params.club_id}")
            await self.clubs.invalidate(params.club_id)
        return result

    async def _update_session(self, params: UpdateSessionParams) -> Result[Session]:
        result = await self.sessions.update_session(
            params.session_id,
            club_id=params.club_id,
            book=params.book,
            due_date=params.due_date,
        )
        if result.is_success:
            logger.info(f"Session {params.session_id} updated")
            await self.clubs.invalidate(result.value.club_id)
        return result

    async def _delete_session(self, params: DeleteSessionParams) -> Result[str]:
        result = await self.sessions.delete_session(params.session_id)
        if result.is_success:
            logger.info(f"Session {params.session_id} deleted")
            if params.club_id:
                await self.clubs.invalidate(params.club_id)
        return result

    # ----- club -----

    async def _update_club(self, params: UpdateClubParams) -> Result[Club]:
        result = await self.clubs.update_club(
            params.club_id, server_id=params.server_id, name=params.name
        )
        if result.is_success:
            logger.info(f"Club {params.club_id} renamed")
        return result

    async def _delete_club(self, params: DeleteClubParams) -> Result[str]:
        result = await self.clubs.delete_club(params.club_id, server_id=params.server_id)
        if result.is_success:
            logger.info(f"Club {params.club_id} deleted")
        return result
