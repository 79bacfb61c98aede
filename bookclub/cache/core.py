"""
Core cache data structures: clock, freshness policy, access statistics.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Clock(ABC):
    """Supplies the current time (naive UTC) for freshness checks."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class CachePolicy:
    """
    Pure freshness check over a last-fetch timestamp and a TTL.

    Holds no state beyond the clock it reads.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def is_fresh(self, last_fetched_at: Optional[datetime], ttl: timedelta) -> bool:
        """False when never fetched, otherwise true iff age < ttl."""
        if last_fetched_at is None:
            return False
        return self._clock.now() - last_fetched_at < ttl

    def is_stale(self, last_fetched_at: Optional[datetime], ttl: timedelta) -> bool:
        return not self.is_fresh(last_fetched_at, ttl)


class MissReason(Enum):
    """Why a read went to the remote source."""
    ABSENT = "absent"
    INCOMPLETE = "incomplete"
    STALE = "stale"
    FORCED = "forced"
    DISABLED = "disabled"


@dataclass
class CacheStats:
    """Counters for one repository's cache behaviour."""
    hits: int = 0
    misses: Dict[MissReason, int] = field(
        default_factory=lambda: {reason: 0 for reason in MissReason}
    )
    remote_failures: int = 0
    cache_write_failures: int = 0

    def record_miss(self, reason: MissReason) -> None:
        self.misses[reason] += 1

    @property
    def total_misses(self) -> int:
        return sum(self.misses.values())

    def to_dict(self) -> Dict[str, Any]:
        total = self.hits + self.total_misses
        hit_rate = (self.hits / total * 100) if total > 0 else 0
        return {
            "hits": self.hits,
            "misses": {reason.value: count for reason, count in self.misses.items()},
            "remote_failures": self.remote_failures,
            "cache_write_failures": self.cache_write_failures,
            "hit_rate_percent": round(hit_rate, 1),
        }
