"""
Cache-aside repositories, one per aggregate.
"""
from .base import CachedRepository
from .book import BookRepository
from .club import ClubRepository
from .member import MemberRepository
from .server import ServerRepository
from .session import SessionRepository

__all__ = [
    "CachedRepository",
    "ClubRepository",
    "MemberRepository",
    "SessionRepository",
    "ServerRepository",
    "BookRepository",
]
