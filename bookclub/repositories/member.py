"""
Member repository.

A cached member is complete once its club list was loaded. Write responses
carry only the profile, so a freshly written member is stored incomplete and
the next read refetches the full aggregate.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bookclub.cache.ttl_policies import EntityType
from bookclub.models import Member, Role
from bookclub.remote.schemas import CreateMemberRequest, UpdateMemberRequest
from bookclub.result import Result
from .base import CachedRepository


class MemberRepository(CachedRepository[Member]):
    entity_type = EntityType.MEMBER

    def is_complete(self, entity: Member) -> bool:
        return entity.clubs is not None

    async def get_member(self, member_id: str, force_refresh: bool = False) -> Result[Member]:
        return await self._read_through(
            member_id,
            lambda: self.remote.get(member_id),
            force_refresh=force_refresh,
        )

    async def _cached_by_user_id(self, user_id: str) -> Tuple[Optional[Member], Optional[datetime]]:
        member = await self.local.get_by_user_id(user_id)
        if member is None:
            return None, None
        return member, await self.local.get_last_fetched_at(member.id)

    async def get_member_by_user_id(self, user_id: str, force_refresh: bool = False) -> Result[Member]:
        """Look a member up by external auth identity."""
        return await self._read_through(
            f"user:{user_id}",
            lambda: self.remote.get_by_user_id(user_id),
            force_refresh=force_refresh,
            load_cached=lambda: self._cached_by_user_id(user_id),
        )

    async def create_member(
        self,
        name: str,
        user_id: Optional[str] = None,
        role: Optional[str] = None,
        club_ids: Optional[List[str]] = None,
    ) -> Result[Member]:
        request = CreateMemberRequest(name=name, user_id=user_id, role=role, clubs=club_ids)
        return await self._write("create", self.remote.create(request))

    async def update_member(
        self,
        member_id: str,
        name: Optional[str] = None,
        handle: Optional[str] = None,
        user_id: Optional[str] = None,
        role: Optional[str] = None,
        points: Optional[int] = None,
        books_read: Optional[int] = None,
        avatar_path: Optional[str] = None,
        club_ids: Optional[List[str]] = None,
        club_roles: Optional[Dict[str, str]] = None,
    ) -> Result[Member]:
        """
        Patch a member. club_ids, when given, replaces the member's club list;
        club_roles sets the role for each listed club only.
        """
        request = UpdateMemberRequest(
            id=member_id,
            name=name,
            handle=handle,
            user_id=user_id,
            role=role,
            points=points,
            books_read=books_read,
            avatar_path=avatar_path,
            clubs=club_ids,
            club_roles=club_roles,
        )
        return await self._write("update", self.remote.update(request))

    async def delete_member(self, member_id: str) -> Result[str]:
        return await self._remove(member_id, self.remote.delete(member_id))

    async def cache_membership(self, club_id: str, member_id: str, role: Role) -> None:
        """Mirror a confirmed role change into the cached club membership."""
        try:
            await self.local.add_membership(club_id, member_id, role)
        except Exception as e:
            self._record_write_failure(member_id, e)

    async def evict_membership(self, club_id: str, member_id: str) -> None:
        try:
            await self.local.remove_membership(club_id, member_id)
        except Exception as e:
            self._record_write_failure(member_id, e)
