"""
Club repository.

A cached club only serves a read when its member list was loaded; clubs
embedded in member or server payloads are stored partial and always miss.
"""
from typing import List, Optional

from bookclub.cache.ttl_policies import EntityType
from bookclub.models import Club
from bookclub.remote.schemas import CreateClubRequest, UpdateClubRequest
from bookclub.result import Result
from .base import CachedRepository


class ClubRepository(CachedRepository[Club]):
    entity_type = EntityType.CLUB

    def is_complete(self, entity: Club) -> bool:
        return entity.is_complete

    async def get_club(
        self,
        club_id: str,
        server_id: Optional[str] = None,
        force_refresh: bool = False,
    ) -> Result[Club]:
        return await self._read_through(
            club_id,
            lambda: self.remote.get(club_id, server_id=server_id),
            force_refresh=force_refresh,
        )

    async def create_club(
        self,
        name: str,
        server_id: Optional[str] = None,
        discord_channel: Optional[str] = None,
    ) -> Result[Club]:
        request = CreateClubRequest(name=name, server_id=server_id, discord_channel=discord_channel)
        return await self._write("create", self.remote.create(request))

    async def update_club(
        self,
        club_id: str,
        server_id: Optional[str] = None,
        name: Optional[str] = None,
        discord_channel: Optional[str] = None,
        shame_list: Optional[List[str]] = None,
    ) -> Result[Club]:
        request = UpdateClubRequest(
            id=club_id,
            server_id=server_id,
            name=name,
            discord_channel=discord_channel,
            shame_list=shame_list,
        )
        return await self._write("update", self.remote.update(request))

    async def delete_club(self, club_id: str, server_id: Optional[str] = None) -> Result[str]:
        return await self._remove(club_id, self.remote.delete(club_id, server_id=server_id))
