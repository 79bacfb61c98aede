"""
Remote access to the reading-club backend.
"""
from .client import BackendClient
from .sources import (
    AvatarRemoteSource,
    BookRemoteSource,
    ClubRemoteSource,
    MemberRemoteSource,
    RemoteSource,
    ServerRemoteSource,
    SessionRemoteSource,
)

__all__ = [
    "BackendClient",
    "RemoteSource",
    "ClubRemoteSource",
    "MemberRemoteSource",
    "SessionRemoteSource",
    "ServerRemoteSource",
    "BookRemoteSource",
    "AvatarRemoteSource",
]
