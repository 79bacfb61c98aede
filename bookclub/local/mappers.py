"""
Row <-> domain conversion for the local cache.

Only scalar fields are mapped here; relations are assembled by the stores.
"""
from datetime import datetime
from typing import List, Optional

from bookclub.models import Book, Club, Discussion, Member, Server
from .tables import BookRow, ClubRow, DiscussionRow, MemberRow, ServerRow


# ===== BOOKS =====

def book_to_row(book: Book, row: BookRow, fetched_at: datetime) -> BookRow:
    row.id = book.id
    row.title = book.title
    row.author = book.author
    row.edition = book.edition
    row.year = book.year
    row.isbn = book.isbn
    row.page_count = book.page_count
    row.image_url = book.image_url
    row.external_id = book.external_id
    row.last_fetched_at = fetched_at
    return row


def book_from_row(row: BookRow) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        author=row.author,
        edition=row.edition,
        year=row.year,
        isbn=row.isbn,
        page_count=row.page_count,
        image_url=row.image_url,
        external_id=row.external_id,
    )


# ===== DISCUSSIONS =====

def discussion_to_row(discussion: Discussion, session_id: str, position: int) -> DiscussionRow:
    return DiscussionRow(
        session_id=session_id,
        position=position,
        id=discussion.id,
        discussion_session_id=discussion.session_id,
        title=discussion.title,
        date=discussion.date,
        location=discussion.location,
    )


def discussion_from_row(row: DiscussionRow) -> Discussion:
    return Discussion(
        id=row.id,
        session_id=row.discussion_session_id,
        title=row.title,
        date=row.date,
        location=row.location,
    )


# ===== MEMBERS =====

def member_scalars_to_row(member: Member, row: MemberRow) -> MemberRow:
    """Copy profile fields only; relation markers are the caller's business."""
    row.id = member.id
    row.user_id = member.user_id
    row.name = member.name
    row.handle = member.handle
    row.avatar_path = member.avatar_path
    row.points = member.points
    row.books_read = member.books_read
    row.role = member.role
    row.created_at = member.created_at
    return row


def member_from_row(
    row: MemberRow,
    clubs: Optional[List[Club]] = None,
    shame_clubs: Optional[List[Club]] = None,
) -> Member:
    return Member(
        id=row.id,
        name=row.name,
        handle=row.handle,
        avatar_path=row.avatar_path,
        books_read=row.books_read or 0,
        points=row.points or 0,
        user_id=row.user_id,
        role=row.role,
        created_at=row.created_at,
        clubs=clubs,
        shame_clubs=shame_clubs,
    )


# ===== CLUBS =====

def club_scalars_to_row(club: Club, row: ClubRow) -> ClubRow:
    row.id = club.id
    row.name = club.name
    row.server_id = club.server_id
    row.discord_channel = club.discord_channel
    row.founded_date = club.founded_date
    row.shame_list = list(club.shame_list)
    return row


def partial_club_from_row(row: ClubRow, role: Optional[str] = None) -> Club:
    """A club as embedded in another aggregate: no members, no sessions."""
    return Club(
        id=row.id,
        name=row.name,
        discord_channel=row.discord_channel,
        server_id=row.server_id,
        founded_date=row.founded_date,
        shame_list=list(row.shame_list or []),
        role=role,
    )


# ===== SERVERS =====

def server_from_row(row: ServerRow, clubs: Optional[List[Club]] = None) -> Server:
    return Server(id=row.id, name=row.name, clubs=clubs)
