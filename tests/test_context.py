"""
Tests for wiring the data layer together.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from bookclub.cache import EntityType
from bookclub.context import build_context
from bookclub.local import Database
from bookclub.remote import (
    AvatarRemoteSource,
    BookRemoteSource,
    ClubRemoteSource,
    MemberRemoteSource,
    ServerRemoteSource,
    SessionRemoteSource,
)
from bookclub.result import Result
from bookclub.usecases import sign_out_cleanup
from config.settings import Settings


@pytest.fixture
def remotes():
    return {
        EntityType.CLUB: AsyncMock(spec=ClubRemoteSource),
        EntityType.MEMBER: AsyncMock(spec=MemberRemoteSource),
        EntityType.SESSION: AsyncMock(spec=SessionRemoteSource),
        EntityType.SERVER: AsyncMock(spec=ServerRemoteSource),
        EntityType.BOOK: AsyncMock(spec=BookRemoteSource),
    }


@pytest.fixture
def context(remotes, clock):
    settings = Settings(session_ttl_seconds=60, cache_database_url="sqlite://")
    ctx = build_context(
        settings=settings,
        clock=clock,
        database=Database("sqlite://"),
        remotes=remotes,
        avatars=AsyncMock(spec=AvatarRemoteSource),
        configure_logs=False,
    )
    yield ctx
    ctx.close()


class TestBuildContext:

    def test_no_client_when_all_remotes_supplied(self, context):
        assert context.client is None
        assert context.storage_client is None

    def test_avatar_source_uses_storage_client(self, remotes, clock):
        settings = Settings(storage_base_url="https://files.test/storage/v1", avatar_bucket="faces")
        ctx = build_context(settings=settings, clock=clock, database=Database("sqlite://"),
                            remotes=remotes, configure_logs=False)
        try:
            assert ctx.profile.avatars is ctx.avatars
            assert ctx.avatars.get_avatar_url("m3/1.png") == (
                "https://files.test/storage/v1/object/public/faces/m3/1.png"
            )
        finally:
            ctx.close()

    def test_ttl_override_applied(self, context):
        assert context.sessions.ttl.total_seconds() == 60
        assert context.clubs.ttl.total_seconds() == 86400

    def test_end_to_end_read_then_sign_out(self, context, remotes, sample_club):
        remotes[EntityType.CLUB].get.return_value = Result.success(sample_club)

        details = asyncio.run(context.queries.get_club_details("c1")).value
        assert details.member_count == 3
        asyncio.run(context.queries.get_club_details("c1"))
        assert remotes[EntityType.CLUB].get.await_count == 1

        cleared = asyncio.run(sign_out_cleanup(context))

        assert cleared == 5
        assert asyncio.run(context.club_store.get("c1")) is None
        assert context.get_stats()["club"]["hits"] == 1
