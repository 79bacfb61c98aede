"""
Cache-aside plumbing shared by every repository.

Read path:
- force_refresh or cache disabled -> remote
- cached row absent, incomplete or stale -> remote
- otherwise return the cached aggregate without touching the network

A successful remote result is mirrored into the local store on a best-effort
basis. A remote failure is returned as-is; the cache is never consulted as a
fallback and never modified.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from bookclub.cache.core import CachePolicy, CacheStats, MissReason
from bookclub.cache.ttl_policies import EntityType, get_ttl_for_entity
from bookclub.errors import CacheWriteFailure
from bookclub.local.stores import LocalStore
from bookclub.result import Result

E = TypeVar("E")

CachedLookup = Callable[[], Awaitable[Tuple[Optional[E], Optional[datetime]]]]


class CachedRepository(Generic[E]):
    """Base class for a cache-aside repository over one LocalStore and one RemoteSource."""

    entity_type: EntityType

    def __init__(
        self,
        local: LocalStore[E],
        remote: Any,
        policy: Optional[CachePolicy] = None,
        ttl: Optional[timedelta] = None,
        cache_enabled: bool = True,
    ):
        self.local = local
        self.remote = remote
        self.policy = policy or CachePolicy()
        self.ttl = ttl or get_ttl_for_entity(self.entity_type)
        self.cache_enabled = cache_enabled
        self.stats = CacheStats()
        self.logger = logging.getLogger(f"repositories.{self.entity_type.value}")

    def is_complete(self, entity: E) -> bool:
        """Whether a cached aggregate is whole enough to serve a read."""
        return True

    async def _cached_by_id(self, entity_id: str) -> Tuple[Optional[E], Optional[datetime]]:
        entity = await self.local.get(entity_id)
        if entity is None:
            return None, None
        return entity, await self.local.get_last_fetched_at(entity_id)

    async def _read_through(
        self,
        key: str,
        fetch_remote: Callable[[], Awaitable[Result[E]]],
        force_refresh: bool = False,
        load_cached: Optional[CachedLookup] = None,
    ) -> Result[E]:
        label = f"{self.entity_type.value} {key}"

        if not self.cache_enabled:
            reason = MissReason.DISABLED
        elif force_refresh:
            reason = MissReason.FORCED
        else:
            try:
                if load_cached is not None:
                    cached, last_fetched_at = await load_cached()
                else:
                    cached, last_fetched_at = await self._cached_by_id(key)
            except Exception as e:
                self.logger.warning(f"Local read failed for {label}, treating as miss: {e}")
                cached, last_fetched_at = None, None

            if cached is None:
                reason = MissReason.ABSENT
            elif not self.is_complete(cached):
                reason = MissReason.INCOMPLETE
            elif not self.policy.is_fresh(last_fetched_at, self.ttl):
                reason = MissReason.STALE
            else:
                self.stats.hits += 1
                self.logger.debug(f"CACHE HIT: {label}")
                return Result.success(cached)

        self.stats.record_miss(reason)
        self.logger.info(f"CACHE MISS ({reason.value}): {label}, fetching from backend")

        result = await fetch_remote()
        if result.is_failure:
            self.stats.remote_failures += 1
            self.logger.error(f"Failed to fetch {label}: {result.error.message}")
            return result

        await self._cache_upsert(result.value)
        return result

    async def _cache_upsert(self, entity: E) -> None:
        """Mirror a remote result locally. Failures are logged and swallowed."""
        try:
            await self.local.upsert(entity)
        except Exception as e:
            self._record_write_failure(getattr(entity, "id", None), e)

    async def _cache_delete(self, entity_id: str) -> None:
        try:
            await self.local.delete(entity_id)
        except Exception as e:
            self._record_write_failure(entity_id, e)

    def _record_write_failure(self, entity_id: Optional[str], cause: Exception) -> None:
        failure = CacheWriteFailure(self.entity_type.value, entity_id or "?", cause)
        self.stats.cache_write_failures += 1
        self.logger.warning(failure.message)

    async def _write(self, action: str, call: Awaitable[Result[E]]) -> Result[E]:
        """Run a remote create/update and mirror its result."""
        result = await call
        if result.is_failure:
            self.stats.remote_failures += 1
            self.logger.error(f"Failed to {action} {self.entity_type.value}: {result.error.message}")
            return result
        self.logger.info(f"{action} {self.entity_type.value} {getattr(result.value, 'id', '')}: ok")
        await self._cache_upsert(result.value)
        return result

    async def _remove(self, entity_id: str, call: Awaitable[Result[str]]) -> Result[str]:
        """Run a remote delete and evict the local row."""
        result = await call
        if result.is_failure:
            self.stats.remote_failures += 1
            self.logger.error(f"Failed to delete {self.entity_type.value} {entity_id}: {result.error.message}")
            return result
        self.logger.info(f"Deleted {self.entity_type.value} {entity_id}")
        await self._cache_delete(entity_id)
        return result

    async def invalidate(self, entity_id: str) -> None:
        """Mark a cached row stale so the next read goes to the backend."""
        self.logger.debug(f"Invalidating {self.entity_type.value} {entity_id}")
        try:
            await self.local.expire(entity_id)
        except Exception as e:
            self._record_write_failure(entity_id, e)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "entity": self.entity_type.value,
            "ttl_seconds": int(self.ttl.total_seconds()),
            "cache_enabled": self.cache_enabled,
            **self.stats.to_dict(),
        }
