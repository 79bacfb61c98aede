"""
Local SQLite cache: engine, ORM rows and per-entity stores.
"""
from .db import Database
from .stores import (
    BookLocalStore,
    ClubLocalStore,
    LocalStore,
    MemberLocalStore,
    ServerLocalStore,
    SessionLocalStore,
)

__all__ = [
    "Database",
    "LocalStore",
    "ClubLocalStore",
    "MemberLocalStore",
    "SessionLocalStore",
    "ServerLocalStore",
    "BookLocalStore",
]
