"""
TTL configuration per cached entity type.
"""
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional


class EntityType(Enum):
    """Entity types with independent cache rows."""
    CLUB = "club"
    MEMBER = "member"
    SESSION = "session"
    SERVER = "server"
    BOOK = "book"


# TTL Configuration by entity type (in seconds)
TTL_CONFIG: Dict[EntityType, Dict[str, Any]] = {
    EntityType.SERVER: {
        "ttl": 604800,            # 7 days, servers rarely change
    },
    EntityType.CLUB: {
        "ttl": 86400,             # 24 hours
    },
    EntityType.MEMBER: {
        "ttl": 86400,             # 24 hours, avatar/points change occasionally
    },
    EntityType.SESSION: {
        "ttl": 21600,             # 6 hours, due dates and discussions move
    },
    EntityType.BOOK: {
        "ttl": 604800,            # 7 days, only registrations are cached
    },
}


def get_ttl_for_entity(
    entity_type: EntityType,
    overrides: Optional[Dict[EntityType, int]] = None,
) -> timedelta:
    """
    Get the freshness window for an entity type.

    Args:
        entity_type: The cached entity type
        overrides: Optional per-type TTLs in seconds (e.g. from settings)

    Returns:
        TTL as a timedelta
    """
    if overrides and entity_type in overrides:
        return timedelta(seconds=overrides[entity_type])
    return timedelta(seconds=TTL_CONFIG[entity_type]["ttl"])


def ttl_overrides_from_settings(settings: Any) -> Dict[EntityType, int]:
    """Collect the *_ttl_seconds fields of a Settings object."""
    return {
        EntityType.CLUB: settings.club_ttl_seconds,
        EntityType.MEMBER: settings.member_ttl_seconds,
        EntityType.SESSION: settings.session_ttl_seconds,
        EntityType.SERVER: settings.server_ttl_seconds,
        EntityType.BOOK: settings.book_ttl_seconds,
    }
