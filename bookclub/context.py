"""
Explicit wiring of stores, sources, repositories and use cases.

Usage:
    context = build_context()
    result = await context.queries.get_club_details("42")
    ...
    await context.clear_local_cache()  # on sign-out
"""
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.settings import Settings, settings as default_settings
from bookclub.cache.core import CachePolicy, Clock, SystemClock
from bookclub.cache.locks import AggregateLocks
from bookclub.cache.ttl_policies import EntityType, get_ttl_for_entity, ttl_overrides_from_settings
from bookclub.local import (
    BookLocalStore,
    ClubLocalStore,
    Database,
    LocalStore,
    MemberLocalStore,
    ServerLocalStore,
    SessionLocalStore,
)
from bookclub.remote import (
    AvatarRemoteSource,
    BackendClient,
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
from bookclub.usecases.account import clear_stores
from bookclub.usecases.clubs import ClubAdminOperations
from bookclub.usecases.profile import ProfileService
from bookclub.usecases.queries import ClubQueries

logger = logging.getLogger("context")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger."""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())


@dataclass
class AppContext:
    settings: Settings
    clock: Clock
    database: Database
    client: Optional[BackendClient]

    club_store: ClubLocalStore
    member_store: MemberLocalStore
    session_store: SessionLocalStore
    server_store: ServerLocalStore
    book_store: BookLocalStore

    clubs: ClubRepository
    members: MemberRepository
    sessions: SessionRepository
    servers: ServerRepository
    books: BookRepository
    avatars: Optional[AvatarRemoteSource]

    admin: ClubAdminOperations
    queries: ClubQueries
    profile: ProfileService
    locks: AggregateLocks = field(default_factory=AggregateLocks)
    storage_client: Optional[BackendClient] = None

    @property
    def local_stores(self) -> List[LocalStore]:
        return [
            self.club_store,
            self.member_store,
            self.session_store,
            self.server_store,
            self.book_store,
        ]

    async def clear_local_cache(self) -> int:
        cleared = await clear_stores(self.local_stores)
        logger.info(f"Cleared {cleared}/{len(self.local_stores)} local stores")
        return cleared

    def get_stats(self) -> Dict[str, Any]:
        return {
            repository.entity_type.value: repository.get_stats()
            for repository in (self.clubs, self.members, self.sessions, self.servers, self.books)
        }

    def close(self) -> None:
        for client in (self.client, self.storage_client):
            if client is not None:
                client.close()
        self.database.dispose()


def build_context(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    client: Optional[BackendClient] = None,
    database: Optional[Database] = None,
    remotes: Optional[Dict[EntityType, Any]] = None,
    avatars: Optional[AvatarRemoteSource] = None,
    configure_logs: bool = True,
) -> AppContext:
    """
    Wire the whole data layer from settings.

    remotes replaces individual remote sources (e.g. with fakes); anything not
    given is built on top of one shared BackendClient. avatars likewise
    replaces the avatar source, which otherwise gets its own storage client.
    """
    settings = settings or default_settings
    if configure_logs:
        configure_logging(settings.log_level)

    clock = clock or SystemClock()
    policy = CachePolicy(clock)
    overrides = ttl_overrides_from_settings(settings)
    remotes = remotes or {}

    if database is None:
        database = Database(settings.cache_database_url)
    database.init_db()

    if client is None and len(remotes) < len(EntityType):
        client = BackendClient(
            base_url=settings.backend_base_url,
            api_key=settings.backend_api_key,
            timeout=settings.request_timeout_seconds,
        )

    def remote_for(entity_type: EntityType, factory):
        return remotes.get(entity_type) or factory(client)

    def repository(cls, entity_type: EntityType, local: LocalStore, source: Any):
        return cls(
            local,
            source,
            policy=policy,
            ttl=get_ttl_for_entity(entity_type, overrides),
            cache_enabled=settings.cache_enabled,
        )

    club_store = ClubLocalStore(database, clock)
    member_store = MemberLocalStore(database, clock)
    session_store = SessionLocalStore(database, clock)
    server_store = ServerLocalStore(database, clock)
    book_store = BookLocalStore(database, clock)

    clubs = repository(ClubRepository, EntityType.CLUB, club_store,
                       remote_for(EntityType.CLUB, ClubRemoteSource))
    members = repository(MemberRepository, EntityType.MEMBER, member_store,
                         remote_for(EntityType.MEMBER, MemberRemoteSource))
    sessions = repository(SessionRepository, EntityType.SESSION, session_store,
                          remote_for(EntityType.SESSION, SessionRemoteSource))
    servers = repository(ServerRepository, EntityType.SERVER, server_store,
                         remote_for(EntityType.SERVER, ServerRemoteSource))
    books = repository(BookRepository, EntityType.BOOK, book_store,
                       remote_for(EntityType.BOOK, BookRemoteSource))

    storage_client = None
    if avatars is None:
        storage_client = BackendClient(
            base_url=settings.storage_base_url,
            api_key=settings.backend_api_key,
            timeout=settings.request_timeout_seconds,
        )
        avatars = AvatarRemoteSource(storage_client, bucket=settings.avatar_bucket, clock=clock)

    locks = AggregateLocks()
    logger.info(
        f"Data layer ready (backend={settings.backend_base_url}, "
        f"cache={'on' if settings.cache_enabled else 'off'})"
    )
    return AppContext(
        settings=settings,
        clock=clock,
        database=database,
        client=client,
        club_store=club_store,
        member_store=member_store,
        session_store=session_store,
        server_store=server_store,
        book_store=book_store,
        clubs=clubs,
        members=members,
        sessions=sessions,
        servers=servers,
        books=books,
        avatars=avatars,
        admin=ClubAdminOperations(clubs, members, sessions, locks),
        queries=ClubQueries(clubs, members, books, clock),
        profile=ProfileService(members, avatars),
        locks=locks,
        storage_client=storage_client,
    )
