"""
Shared fixtures: in-memory cache database, a hand-driven clock, sample
aggregates and AsyncMock remote sources.
"""
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from bookclub.cache.core import CachePolicy, Clock
from bookclub.local import (
    BookLocalStore,
    ClubLocalStore,
    Database,
    MemberLocalStore,
    ServerLocalStore,
    SessionLocalStore,
)
from bookclub.models import Book, Club, ClubMember, Discussion, Member, Role, Server, Session
from bookclub.remote import (
    BookRemoteSource,
    ClubRemoteSource,
    MemberRemoteSource,
    ServerRemoteSource,
    SessionRemoteSource,
)
from bookclub.repositories import (
    BookRepository,
    ClubRepository,
    MemberRepository,
    ServerRepository,
    SessionRepository,
)


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 12, 0)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def policy(clock):
    return CachePolicy(clock)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def club_store(database, clock):
    return ClubLocalStore(database, clock)


@pytest.fixture
def member_store(database, clock):
    return MemberLocalStore(database, clock)


@pytest.fixture
def session_store(database, clock):
    return SessionLocalStore(database, clock)


@pytest.fixture
def server_store(database, clock):
    return ServerLocalStore(database, clock)


@pytest.fixture
def book_store(database, clock):
    return BookLocalStore(database, clock)


# =============================================================================
# Sample aggregates
# =============================================================================

@pytest.fixture
def sample_book():
    return Book(
        id="b1",
        title="The Left Hand of Darkness",
        author="Ursula K. Le Guin",
        year=1969,
        isbn="9780441478125",
        page_count=304,
    )


@pytest.fixture
def sample_session(sample_book):
    return Session(
        id="s1",
        club_id="c1",
        book=sample_book,
        due_date=datetime(2025, 3, 30, 17, 0),
        discussions=[
            Discussion(
                id="d1",
                session_id="s1",
                title="Chapters 1-5",
                date=datetime(2025, 3, 10, 19, 0),
                location="Library",
            ),
        ],
    )


@pytest.fixture
def owner():
    return Member(id="m1", name="Ana Reyes", handle="@ana", user_id="u1", books_read=12, points=40)


@pytest.fixture
def admin():
    return Member(id="m2", name="Ben Ito", user_id="u2", books_read=3)


@pytest.fixture
def reader():
    return Member(id="m3", name="Cleo Park", user_id="u3")


@pytest.fixture
def sample_club(sample_session, owner, admin, reader):
    """A complete club: members loaded, one active session."""
    return Club(
        id="c1",
        name="Sci-Fi Circle",
        discord_channel="1234",
        server_id="srv1",
        founded_date=date(2021, 6, 1),
        shame_list=["m3"],
        members=[
            ClubMember(member=reader, role=Role.MEMBER),
            ClubMember(member=owner, role=Role.OWNER),
            ClubMember(member=admin, role=Role.ADMIN),
        ],
        active_session=sample_session,
        past_sessions=[],
    )


@pytest.fixture
def sample_member():
    """A complete member: club list loaded."""
    return Member(
        id="m3",
        name="Cleo Park",
        user_id="u3",
        books_read=5,
        created_at=datetime(2023, 1, 15, 9, 30),
        clubs=[
            Club(id="c1", name="Sci-Fi Circle", server_id="srv1", role="member"),
            Club(id="c2", name="Poetry Night", server_id="srv1", role="admin"),
        ],
        shame_clubs=[],
    )


@pytest.fixture
def sample_server():
    return Server(
        id="srv1",
        name="Readers Guild",
        clubs=[
            Club(id="c1", name="Sci-Fi Circle", server_id="srv1"),
            Club(id="c2", name="Poetry Night", server_id="srv1"),
        ],
    )


# =============================================================================
# Remote fakes and repositories
# =============================================================================

@pytest.fixture
def club_remote():
    return AsyncMock(spec=ClubRemoteSource)


@pytest.fixture
def member_remote():
    return AsyncMock(spec=MemberRemoteSource)


@pytest.fixture
def session_remote():
    return AsyncMock(spec=SessionRemoteSource)


@pytest.fixture
def server_remote():
    return AsyncMock(spec=ServerRemoteSource)


@pytest.fixture
def book_remote():
    return AsyncMock(spec=BookRemoteSource)


@pytest.fixture
def club_repository(club_store, club_remote, policy):
    return ClubRepository(club_store, club_remote, policy=policy)


@pytest.fixture
def member_repository(member_store, member_remote, policy):
    return MemberRepository(member_store, member_remote, policy=policy)


@pytest.fixture
def session_repository(session_store, session_remote, policy):
    return SessionRepository(session_store, session_remote, policy=policy)


@pytest.fixture
def server_repository(server_store, server_remote, policy):
    return ServerRepository(server_store, server_remote, policy=policy)


@pytest.fixture
def book_repository(book_store, book_remote, policy):
    return BookRepository(book_store, book_remote, policy=policy)
