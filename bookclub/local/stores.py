"""
Per-entity local stores over the SQLite cache.

Each public method is a coroutine; the SQLAlchemy work runs in a worker thread
inside one transaction. Stores never decide freshness, they only persist what
they are given and report when it was written.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session as DbSession

from bookclub.cache.core import Clock, SystemClock
from bookclub.models import Book, Club, ClubMember, Member, Role, Server, Session
from .db import Database
from .mappers import (
    book_from_row,
    book_to_row,
    club_scalars_to_row,
    discussion_from_row,
    discussion_to_row,
    member_from_row,
    member_scalars_to_row,
    partial_club_from_row,
    server_from_row,
)
from .tables import (
    BookRow,
    ClubMemberRow,
    ClubRow,
    DiscussionRow,
    MemberRow,
    ServerRow,
    SessionRow,
)

logger = logging.getLogger("local.stores")

E = TypeVar("E")


class LocalStore(ABC, Generic[E]):
    """Contract every per-entity local store satisfies."""

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[E]:
        ...

    @abstractmethod
    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        ...

    @abstractmethod
    async def upsert(self, entity: E) -> None:
        ...

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        ...

    @abstractmethod
    async def delete_all(self) -> None:
        ...


# =============================================================================
# Session-level helpers (run inside an open SQLAlchemy session)
# =============================================================================

def _last_fetched(db: DbSession, model: Any, entity_id: str) -> Optional[datetime]:
    row = db.get(model, entity_id)
    return row.last_fetched_at if row is not None else None


def _save_book(db: DbSession, book: Book, now: datetime) -> None:
    if book.id is None:
        return
    row = db.get(BookRow, book.id)
    if row is None:
        row = BookRow()
        db.add(row)
    book_to_row(book, row, now)
    db.flush()


def _load_session(db: DbSession, session_id: str) -> Optional[Session]:
    row = db.get(SessionRow, session_id)
    if row is None or row.book_id is None:
        return None
    book_row = db.get(BookRow, row.book_id)
    if book_row is None:
        return None
    discussions = (
        db.query(DiscussionRow)
        .filter(DiscussionRow.session_id == session_id)
        .order_by(DiscussionRow.position)
        .all()
    )
    return Session(
        id=row.id,
        club_id=row.club_id,
        book=book_from_row(book_row),
        due_date=row.due_date,
        discussions=[discussion_from_row(d) for d in discussions],
    )


def _save_session(db: DbSession, session: Session, now: datetime) -> None:
    _save_book(db, session.book, now)

    row = db.get(SessionRow, session.id)
    if row is None:
        row = SessionRow(id=session.id)
        db.add(row)
    row.club_id = session.club_id
    row.book_id = session.book.id
    row.due_date = session.due_date
    row.last_fetched_at = now

    # Discussion list is replaced wholesale, mirroring the backend
    db.query(DiscussionRow).filter(DiscussionRow.session_id == session.id).delete()
    for position, discussion in enumerate(session.discussions):
        db.add(discussion_to_row(discussion, session.id, position))
    db.flush()


def _delete_session(db: DbSession, session_id: str) -> None:
    db.query(DiscussionRow).filter(DiscussionRow.session_id == session_id).delete()
    db.query(SessionRow).filter(SessionRow.id == session_id).delete()


def _ensure_partial_club(db: DbSession, club: Club, now: datetime) -> None:
    """Insert an embedded club if unknown. Existing rows are left untouched."""
    if db.get(ClubRow, club.id) is not None:
        return
    row = club_scalars_to_row(club, ClubRow())
    row.members_loaded = False
    row.past_session_ids = []
    row.last_fetched_at = now
    db.add(row)
    db.flush()


def _ensure_partial_member(db: DbSession, member: Member, now: datetime) -> None:
    """
    Insert a member seen inside a club payload if unknown.

    Club payloads carry a trimmed profile, so an existing row is left untouched.
    """
    if db.get(MemberRow, member.id) is not None:
        return
    row = member_scalars_to_row(member, MemberRow())
    row.clubs_loaded = False
    row.shame_club_ids = None
    row.last_fetched_at = now
    db.add(row)
    db.flush()


def _next_club_position(db: DbSession, club_id: str) -> int:
    current = (
        db.query(func.max(ClubMemberRow.position))
        .filter(ClubMemberRow.club_id == club_id)
        .scalar()
    )
    return 0 if current is None else current + 1


def _load_member_from_row(db: DbSession, row: MemberRow) -> Member:
    clubs = None
    if row.clubs_loaded:
        links = (
            db.query(ClubMemberRow)
            .filter(ClubMemberRow.member_id == row.id)
            .order_by(ClubMemberRow.member_position)
            .all()
        )
        clubs = []
        for link in links:
            club_row = db.get(ClubRow, link.club_id)
            if club_row is not None:
                clubs.append(partial_club_from_row(club_row, role=link.role))

    shame_clubs = None
    if row.shame_club_ids is not None:
        shame_clubs = []
        for club_id in row.shame_club_ids:
            club_row = db.get(ClubRow, club_id)
            if club_row is not None:
                shame_clubs.append(partial_club_from_row(club_row))

    return member_from_row(row, clubs=clubs, shame_clubs=shame_clubs)


def _load_member(db: DbSession, member_id: str) -> Optional[Member]:
    row = db.get(MemberRow, member_id)
    if row is None:
        return None
    return _load_member_from_row(db, row)


def _load_member_by_user_id(db: DbSession, user_id: str) -> Optional[Member]:
    row = db.query(MemberRow).filter(MemberRow.user_id == user_id).first()
    if row is None:
        return None
    return _load_member_from_row(db, row)


def _save_member(db: DbSession, member: Member, now: datetime) -> None:
    row = db.get(MemberRow, member.id)
    if row is None:
        row = MemberRow()
        db.add(row)
    member_scalars_to_row(member, row)
    row.last_fetched_at = now
    row.clubs_loaded = member.clubs is not None

    if member.clubs is not None:
        existing: Dict[str, ClubMemberRow] = {
            link.club_id: link
            for link in db.query(ClubMemberRow).filter(ClubMemberRow.member_id == member.id)
        }
        current_ids = set()
        for member_position, club in enumerate(member.clubs):
            _ensure_partial_club(db, club, now)
            current_ids.add(club.id)
            link = existing.get(club.id)
            if link is None:
                link = ClubMemberRow(
                    club_id=club.id,
                    member_id=member.id,
                    role=club.role,
                    position=_next_club_position(db, club.id),
                )
                db.add(link)
            elif club.role is not None:
                link.role = club.role
            link.member_position = member_position
            db.flush()
        # Memberships missing from the payload no longer exist
        for club_id, link in existing.items():
            if club_id not in current_ids:
                db.delete(link)

    if member.shame_clubs is not None:
        for club in member.shame_clubs:
            _ensure_partial_club(db, club, now)
        row.shame_club_ids = [club.id for club in member.shame_clubs]
    else:
        row.shame_club_ids = None
    db.flush()


def _delete_member(db: DbSession, member_id: str) -> None:
    db.query(ClubMemberRow).filter(ClubMemberRow.member_id == member_id).delete()
    db.query(MemberRow).filter(MemberRow.id == member_id).delete()


def _load_club_from_row(db: DbSession, row: ClubRow) -> Club:
    members = None
    if row.members_loaded:
        links = (
            db.query(ClubMemberRow)
            .filter(ClubMemberRow.club_id == row.id)
            .order_by(ClubMemberRow.position)
            .all()
        )
        members = []
        for link in links:
            member_row = db.get(MemberRow, link.member_id)
            if member_row is not None:
                members.append(
                    ClubMember(member=member_from_row(member_row), role=Role.from_string(link.role))
                )

    active_session = None
    if row.active_session_id:
        active_session = _load_session(db, row.active_session_id)

    past_sessions = []
    for session_id in row.past_session_ids or []:
        session = _load_session(db, session_id)
        if session is not None:
            past_sessions.append(session)

    club = partial_club_from_row(row)
    club.members = members
    club.active_session = active_session
    club.past_sessions = past_sessions
    return club


def _load_club(db: DbSession, club_id: str) -> Optional[Club]:
    row = db.get(ClubRow, club_id)
    if row is None:
        return None
    return _load_club_from_row(db, row)


def _save_club(db: DbSession, club: Club, now: datetime) -> None:
    row = db.get(ClubRow, club.id)
    if row is None:
        row = ClubRow()
        db.add(row)
    club_scalars_to_row(club, row)
    row.members_loaded = club.members is not None
    row.last_fetched_at = now

    if club.members is not None:
        previous_positions = {
            link.member_id: link.member_position
            for link in db.query(ClubMemberRow).filter(ClubMemberRow.club_id == club.id)
        }
        db.query(ClubMemberRow).filter(ClubMemberRow.club_id == club.id).delete()
        for position, club_member in enumerate(club.members):
            _ensure_partial_member(db, club_member.member, now)
            db.add(ClubMemberRow(
                club_id=club.id,
                member_id=club_member.member.id,
                role=club_member.role.value,
                position=position,
                member_position=previous_positions.get(club_member.member.id, 0),
            ))

    if club.active_session is not None:
        _save_session(db, club.active_session, now)
        row.active_session_id = club.active_session.id
    else:
        row.active_session_id = None

    for session in club.past_sessions:
        _save_session(db, session, now)
    row.past_session_ids = [session.id for session in club.past_sessions]
    db.flush()


def _delete_club(db: DbSession, club_id: str) -> None:
    db.query(ClubMemberRow).filter(ClubMemberRow.club_id == club_id).delete()
    db.query(ClubRow).filter(ClubRow.id == club_id).delete()


def _load_server(db: DbSession, server_id: str) -> Optional[Server]:
    row = db.get(ServerRow, server_id)
    if row is None:
        return None
    clubs = None
    if row.club_ids is not None:
        clubs = []
        for club_id in row.club_ids:
            club_row = db.get(ClubRow, club_id)
            if club_row is not None:
                clubs.append(partial_club_from_row(club_row))
    return server_from_row(row, clubs=clubs)


def _save_server(db: DbSession, server: Server, now: datetime) -> None:
    row = db.get(ServerRow, server.id)
    if row is None:
        row = ServerRow(id=server.id)
        db.add(row)
    row.name = server.name
    row.last_fetched_at = now
    if server.clubs is not None:
        for club in server.clubs:
            _ensure_partial_club(db, club, now)
        row.club_ids = [club.id for club in server.clubs]
    else:
        row.club_ids = None
    db.flush()


# =============================================================================
# Stores
# =============================================================================

class SqlLocalStore(LocalStore[E]):
    """Shared plumbing: thread offload, transaction scope, clock."""

    model: Any = None

    def __init__(self, database: Database, clock: Optional[Clock] = None):
        self._database = database
        self._clock = clock or SystemClock()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        def work():
            with self._database.session_scope() as db:
                return fn(db, *args)

        return await asyncio.to_thread(work)

    def _now(self) -> datetime:
        return self._clock.now()

    async def expire(self, entity_id: str) -> None:
        """Keep the row but clear its fetch time so the next read misses."""
        def clear_marker(db: DbSession) -> None:
            row = db.get(self.model, entity_id)
            if row is not None:
                row.last_fetched_at = None

        await self._run(clear_marker)


class ClubLocalStore(SqlLocalStore[Club]):
    """Clubs with their member join rows and sessions."""

    model = ClubRow

    async def get(self, entity_id: str) -> Optional[Club]:
        return await self._run(_load_club, entity_id)

    async def get_for_server(self, server_id: str) -> List[Club]:
        def query(db: DbSession) -> List[Club]:
            rows = db.query(ClubRow).filter(ClubRow.server_id == server_id).order_by(ClubRow.name).all()
            return [_load_club_from_row(db, row) for row in rows]

        return await self._run(query)

    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        return await self._run(_last_fetched, ClubRow, entity_id)

    async def upsert(self, entity: Club) -> None:
        logger.debug(f"Upserting club {entity.id} ({entity.load_state.value})")
        await self._run(_save_club, entity, self._now())

    async def delete(self, entity_id: str) -> None:
        await self._run(_delete_club, entity_id)

    async def delete_all(self) -> None:
        def clear(db: DbSession) -> None:
            db.query(ClubMemberRow).delete()
            db.query(ClubRow).delete()

        logger.debug("Clearing all clubs from cache")
        await self._run(clear)


class MemberLocalStore(SqlLocalStore[Member]):
    """Members and their club memberships."""

    model = MemberRow

    async def get(self, entity_id: str) -> Optional[Member]:
        return await self._run(_load_member, entity_id)

    async def get_by_user_id(self, user_id: str) -> Optional[Member]:
        return await self._run(_load_member_by_user_id, user_id)

    async def get_for_club(self, club_id: str) -> List[Member]:
        def query(db: DbSession) -> List[Member]:
            rows = (
                db.query(MemberRow)
                .join(ClubMemberRow, ClubMemberRow.member_id == MemberRow.id)
                .filter(ClubMemberRow.club_id == club_id)
                .order_by(ClubMemberRow.position)
                .all()
            )
            return [member_from_row(row) for row in rows]

        return await self._run(query)

    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        return await self._run(_last_fetched, MemberRow, entity_id)

    async def upsert(self, entity: Member) -> None:
        logger.debug(f"Upserting member {entity.id}")
        await self._run(_save_member, entity, self._now())

    async def add_membership(self, club_id: str, member_id: str, role: Role = Role.MEMBER) -> None:
        def link(db: DbSession) -> None:
            existing = db.get(ClubMemberRow, (club_id, member_id))
            if existing is not None:
                existing.role = role.value
                return
            db.add(ClubMemberRow(
                club_id=club_id,
                member_id=member_id,
                role=role.value,
                position=_next_club_position(db, club_id),
            ))

        await self._run(link)

    async def remove_membership(self, club_id: str, member_id: str) -> None:
        def unlink(db: DbSession) -> None:
            db.query(ClubMemberRow).filter(
                ClubMemberRow.club_id == club_id,
                ClubMemberRow.member_id == member_id,
            ).delete()

        await self._run(unlink)

    async def delete(self, entity_id: str) -> None:
        await self._run(_delete_member, entity_id)

    async def delete_all(self) -> None:
        def clear(db: DbSession) -> None:
            db.query(ClubMemberRow).delete()
            db.query(MemberRow).delete()

        logger.debug("Clearing all members from cache")
        await self._run(clear)


class SessionLocalStore(SqlLocalStore[Session]):
    """Sessions with their book and ordered discussion list."""

    model = SessionRow

    async def get(self, entity_id: str) -> Optional[Session]:
        return await self._run(_load_session, entity_id)

    async def get_for_club(self, club_id: str) -> List[Session]:
        def query(db: DbSession) -> List[Session]:
            ids = [
                row.id
                for row in db.query(SessionRow).filter(SessionRow.club_id == club_id).all()
            ]
            sessions = [_load_session(db, session_id) for session_id in ids]
            return [session for session in sessions if session is not None]

        return await self._run(query)

    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        return await self._run(_last_fetched, SessionRow, entity_id)

    async def upsert(self, entity: Session) -> None:
        logger.debug(f"Upserting session {entity.id}")
        await self._run(_save_session, entity, self._now())

    async def delete(self, entity_id: str) -> None:
        await self._run(_delete_session, entity_id)

    async def delete_all(self) -> None:
        def clear(db: DbSession) -> None:
            db.query(DiscussionRow).delete()
            db.query(SessionRow).delete()

        logger.debug("Clearing all sessions from cache")
        await self._run(clear)


class ServerLocalStore(SqlLocalStore[Server]):

    model = ServerRow

    async def get(self, entity_id: str) -> Optional[Server]:
        return await self._run(_load_server, entity_id)

    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        return await self._run(_last_fetched, ServerRow, entity_id)

    async def upsert(self, entity: Server) -> None:
        logger.debug(f"Upserting server {entity.id}")
        await self._run(_save_server, entity, self._now())

    async def delete(self, entity_id: str) -> None:
        def remove(db: DbSession) -> None:
            db.query(ServerRow).filter(ServerRow.id == entity_id).delete()

        await self._run(remove)

    async def delete_all(self) -> None:
        def clear(db: DbSession) -> None:
            db.query(ServerRow).delete()

        logger.debug("Clearing all servers from cache")
        await self._run(clear)


class BookLocalStore(SqlLocalStore[Book]):

    model = BookRow

    async def get(self, entity_id: str) -> Optional[Book]:
        def load(db: DbSession) -> Optional[Book]:
            row = db.get(BookRow, entity_id)
            return book_from_row(row) if row is not None else None

        return await self._run(load)

    async def get_last_fetched_at(self, entity_id: str) -> Optional[datetime]:
        return await self._run(_last_fetched, BookRow, entity_id)

    async def upsert(self, entity: Book) -> None:
        if entity.id is None:
            raise ValueError("Cannot cache a book without an id")
        await self._run(_save_book, entity, self._now())

    async def delete(self, entity_id: str) -> None:
        def remove(db: DbSession) -> None:
            db.query(BookRow).filter(BookRow.id == entity_id).delete()

        await self._run(remove)

    async def delete_all(self) -> None:
        def clear(db: DbSession) -> None:
            db.query(BookRow).delete()

        logger.debug("Clearing all books from cache")
        await self._run(clear)
