"""
Cache policy module: freshness checks, per-entity TTLs, aggregate locks.
"""
from .core import CachePolicy, CacheStats, Clock, MissReason, SystemClock
from .ttl_policies import (
    TTL_CONFIG,
    EntityType,
    get_ttl_for_entity,
    ttl_overrides_from_settings,
)
from .locks import AggregateLocks

__all__ = [
    # Core types
    "CachePolicy",
    "CacheStats",
    "Clock",
    "MissReason",
    "SystemClock",
    # TTL policies
    "TTL_CONFIG",
    "EntityType",
    "get_ttl_for_entity",
    "ttl_overrides_from_settings",
    # Per-aggregate locks
    "AggregateLocks",
]
