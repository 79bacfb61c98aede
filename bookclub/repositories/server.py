"""
Server repository.
"""
from typing import List, Optional

from bookclub.cache.ttl_policies import EntityType
from bookclub.models import Server
from bookclub.remote.schemas import CreateServerRequest, UpdateServerRequest
from bookclub.result import Result
from .base import CachedRepository


class ServerRepository(CachedRepository[Server]):
    entity_type = EntityType.SERVER

    async def get_server(self, server_id: str, force_refresh: bool = False) -> Result[Server]:
        return await self._read_through(
            server_id,
            lambda: self.remote.get(server_id),
            force_refresh=force_refresh,
        )

    async def get_all_servers(self) -> Result[List[Server]]:
        """Always asks the backend; every server returned is cached."""
        result = await self.remote.get_all()
        if result.is_failure:
            self.stats.remote_failures += 1
            self.logger.error(f"Failed to list servers: {result.error.message}")
            return result
        for server in result.value:
            await self._cache_upsert(server)
        self.logger.info(f"Fetched {len(result.value)} servers")
        return result

    async def create_server(self, name: str) -> Result[Server]:
        return await self._write("create", self.remote.create(CreateServerRequest(name=name)))

    async def update_server(self, server_id: str, name: Optional[str] = None) -> Result[Server]:
        request = UpdateServerRequest(id=server_id, name=name)
        return await self._write("update", self.remote.update(request))

    async def delete_server(self, server_id: str) -> Result[str]:
        return await self._remove(server_id, self.remote.delete(server_id))
