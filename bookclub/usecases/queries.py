"""
Read-only club and member queries.

These are not role-gated; anyone who can see a club can read it. Results are
flattened into small view records so callers don't walk aggregates.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from bookclub.cache.core import Clock, SystemClock
from bookclub.models import Book, Discussion, Role
from bookclub.repositories import BookRepository, ClubRepository, MemberRepository
from bookclub.result import Result

logger = logging.getLogger("usecases.queries")


@dataclass
class BookInfo:
    title: str
    author: str
    year: Optional[int] = None
    page_count: Optional[int] = None

    @classmethod
    def from_book(cls, book: Book) -> "BookInfo":
        return cls(title=book.title, author=book.author, year=book.year, page_count=book.page_count)


@dataclass
class DiscussionInfo:
    title: str
    date: datetime
    location: Optional[str] = None


@dataclass
class ClubDetails:
    club_id: str
    club_name: str
    member_count: int
    founded_year: Optional[int] = None
    current_book: Optional[BookInfo] = None
    next_discussion: Optional[DiscussionInfo] = None


@dataclass
class DiscussionTimelineItem:
    id: str
    title: str
    date: datetime
    location: Optional[str]
    is_past: bool
    is_next: bool


@dataclass
class ActiveSessionDetails:
    session_id: str
    book: BookInfo
    due_date: Optional[datetime]
    discussions: List[DiscussionTimelineItem]


@dataclass
class MemberListItem:
    member_id: str
    name: str
    role: Role
    handle: Optional[str] = None
    avatar_path: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class ClubListItem:
    id: str
    name: str
    role: Optional[Role] = None


@dataclass
class CurrentlyReadingBook:
    club_id: str
    club_name: str
    book_title: str
    progress: float  # share of the session's discussions already held, 0.0-1.0
    due_date: Optional[datetime] = None


def build_timeline(discussions: List[Discussion], now: datetime) -> List[DiscussionTimelineItem]:
    """
    Sort discussions by date and flag them relative to today.

    A discussion stays current until its calendar day has passed: the first
    one dated after today is "next", everything before it is "past". With no
    upcoming discussion, all of them are past.
    """
    ordered = sorted(discussions, key=lambda d: d.date)
    next_index = next(
        (i for i, d in enumerate(ordered) if d.date.date() > now.date()),
        -1,
    )
    return [
        DiscussionTimelineItem(
            id=d.id,
            title=d.title,
            date=d.date,
            location=d.location,
            is_past=next_index == -1 or i < next_index,
            is_next=next_index != -1 and i == next_index,
        )
        for i, d in enumerate(ordered)
    ]


class ClubQueries:
    def __init__(
        self,
        clubs: ClubRepository,
        members: MemberRepository,
        books: BookRepository,
        clock: Optional[Clock] = None,
    ):
        self.clubs = clubs
        self.members = members
        self.books = books
        self.clock = clock or SystemClock()

    async def get_club_details(self, club_id: str, force_refresh: bool = False) -> Result[ClubDetails]:
        result = await self.clubs.get_club(club_id, force_refresh=force_refresh)
        if result.is_failure:
            logger.error(f"Failed to load club details for {club_id}: {result.error.message}")
            return Result.failure(result.error)

        club = result.value
        now = self.clock.now()
        session = club.active_session
        upcoming = [d for d in session.discussions if d.date > now] if session else []
        next_discussion = min(upcoming, key=lambda d: d.date) if upcoming else None

        details = ClubDetails(
            club_id=club.id,
            club_name=club.name,
            member_count=len(club.members or []),
            founded_year=club.founded_date.year if club.founded_date else None,
            current_book=BookInfo.from_book(session.book) if session else None,
            next_discussion=(
                DiscussionInfo(
                    title=next_discussion.title,
                    date=next_discussion.date,
                    location=next_discussion.location,
                )
                if next_discussion else None
            ),
        )
        logger.info(f"Loaded club details for {club.name} ({details.member_count} members)")
        return Result.success(details)

    async def get_active_session(
        self, club_id: str, force_refresh: bool = False
    ) -> Result[Optional[ActiveSessionDetails]]:
        """Success(None) when the club has no active session."""
        result = await self.clubs.get_club(club_id, force_refresh=force_refresh)
        if result.is_failure:
            logger.error(f"Failed to load active session for club {club_id}: {result.error.message}")
            return Result.failure(result.error)

        session = result.value.active_session
        if session is None:
            return Result.success(None)

        return Result.success(ActiveSessionDetails(
            session_id=session.id,
            book=BookInfo.from_book(session.book),
            due_date=session.due_date,
            discussions=build_timeline(session.discussions, self.clock.now()),
        ))

    async def get_club_members(self, club_id: str, force_refresh: bool = False) -> Result[List[MemberListItem]]:
        """Members ordered owners first, then admins, then members."""
        result = await self.clubs.get_club(club_id, force_refresh=force_refresh)
        if result.is_failure:
            logger.error(f"Failed to load members of club {club_id}: {result.error.message}")
            return Result.failure(result.error)

        club_members = sorted(result.value.members or [], key=lambda cm: cm.role.rank)
        return Result.success([
            MemberListItem(
                member_id=cm.member.id,
                name=cm.member.name,
                role=cm.role,
                handle=cm.member.handle,
                avatar_path=cm.member.avatar_path,
                user_id=cm.member.user_id,
            )
            for cm in club_members
        ])

    async def get_member_clubs(self, user_id: str, force_refresh: bool = False) -> Result[List[ClubListItem]]:
        result = await self.members.get_member_by_user_id(user_id, force_refresh=force_refresh)
        if result.is_failure:
            logger.error(f"Failed to load clubs for user {user_id}: {result.error.message}")
            return Result.failure(result.error)

        return Result.success([
            ClubListItem(
                id=club.id,
                name=club.name,
                role=Role.from_string(club.role) if club.role else None,
            )
            for club in result.value.clubs or []
        ])

    async def get_currently_reading(
        self, user_id: str, force_refresh: bool = False
    ) -> Result[List[CurrentlyReadingBook]]:
        """
        The book each of the user's clubs is reading now.

        Clubs that fail to load or have no active session are skipped.
        """
        result = await self.members.get_member_by_user_id(user_id, force_refresh=force_refresh)
        if result.is_failure:
            logger.error(f"Failed to load currently reading books for user {user_id}: {result.error.message}")
            return Result.failure(result.error)

        now = self.clock.now()
        books = []
        for club in result.value.clubs or []:
            club_result = await self.clubs.get_club(club.id)
            if club_result.is_failure:
                logger.warning(f"Skipping club {club.id}: {club_result.error.message}")
                continue
            session = club_result.value.active_session
            if session is None:
                continue
            total = len(session.discussions)
            held = sum(1 for d in session.discussions if d.date < now)
            books.append(CurrentlyReadingBook(
                club_id=club.id,
                club_name=club.name,
                book_title=session.book.title,
                progress=held / total if total else 0.0,
                due_date=session.due_date,
            ))
        return Result.success(books)

    async def search_books(self, query: str, limit: Optional[int] = None) -> Result[List[Book]]:
        if not query.strip():
            return Result.success([])
        return await self.books.search_books(query.strip(), limit=limit)
