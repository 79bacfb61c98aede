"""
Pydantic wire schemas for the backend functions.

Response models convert to domain aggregates through to_domain(). Request
models are patch-style: fields left as None are dropped from the payload and
the backend leaves them unchanged, while list fields replace the stored
collection wholesale.
"""
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from bookclub.models import Book, Club, ClubMember, Discussion, Member, Role, Server, Session

# Date-only due dates and discussion dates fall on this time of day
DEFAULT_EVENT_TIME = time(17, 0)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime string into a naive UTC datetime."""
    if not value:
        return None
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), DEFAULT_EVENT_TIME)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class WireModel(BaseModel):
    """Base for every wire schema."""

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True  # backend ids arrive as integers


# ===== CORE DTOs =====

class BookDto(WireModel):
    id: Optional[str] = None
    title: str
    author: str
    edition: Optional[str] = None
    year: Optional[int] = None
    isbn: Optional[str] = None
    page_count: Optional[int] = None
    image_url: Optional[str] = None
    external_google_id: Optional[str] = None

    def to_domain(self) -> Book:
        return Book(
            id=self.id,
            title=self.title,
            author=self.author,
            edition=self.edition,
            year=self.year,
            isbn=self.isbn,
            page_count=self.page_count,
            image_url=self.image_url,
            external_id=self.external_google_id,
        )

    @classmethod
    def from_domain(cls, book: Book) -> "BookDto":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            edition=book.edition,
            year=book.year,
            isbn=book.isbn,
            page_count=book.page_count,
            image_url=book.image_url,
            external_google_id=book.external_id,
        )


class DiscussionDto(WireModel):
    id: str = ""
    session_id: Optional[str] = None
    title: str
    date: str
    location: Optional[str] = None

    def to_domain(self) -> Discussion:
        return Discussion(
            id=self.id,
            session_id=self.session_id,
            title=self.title,
            date=parse_datetime(self.date),
            location=self.location,
        )

    @classmethod
    def from_domain(cls, discussion: Discussion) -> "DiscussionDto":
        return cls(
            id=discussion.id,
            session_id=discussion.session_id,
            title=discussion.title,
            date=format_datetime(discussion.date),
            location=discussion.location,
        )


class MemberDto(WireModel):
    """A member as embedded in club payloads or returned by member writes."""
    id: str
    name: Optional[str] = None  # some responses omit it
    handle: Optional[str] = None
    avatar_path: Optional[str] = None
    points: int = 0
    books_read: int = 0
    user_id: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[str] = None
    clubs: List[str] = []

    def to_domain(self) -> Member:
        return Member(
            id=self.id,
            name=self.name or "",
            handle=self.handle,
            avatar_path=self.avatar_path,
            points=self.points,
            books_read=self.books_read,
            user_id=self.user_id,
            role=self.role,
            created_at=parse_datetime(self.created_at),
        )

    def to_club_member(self) -> ClubMember:
        """Inside a club payload, role is the member's role in that club."""
        member = self.to_domain()
        member.role = None
        return ClubMember(member=member, role=Role.from_string(self.role))


class ClubDto(WireModel):
    id: str
    name: str
    discord_channel: Optional[str] = None
    server_id: Optional[str] = None
    founded_date: Optional[str] = None
    role: Optional[str] = None

    def to_domain(self) -> Club:
        return Club(
            id=self.id,
            name=self.name,
            discord_channel=self.discord_channel,
            server_id=self.server_id,
            founded_date=parse_date(self.founded_date),
            role=self.role,
        )


class SessionDto(WireModel):
    id: str
    club_id: Optional[str] = None
    book: Optional[BookDto] = None
    due_date: Optional[str] = None
    discussions: List[DiscussionDto] = []

    def to_domain(self, club_id: Optional[str] = None) -> Session:
        if self.book is None:
            raise ValueError(f"Session {self.id} has no book")
        return Session(
            id=self.id,
            club_id=self.club_id or club_id or "",
            book=self.book.to_domain(),
            due_date=parse_datetime(self.due_date),
            discussions=[d.to_domain() for d in self.discussions],
        )


class ServerDto(WireModel):
    id: str
    name: str

    def to_domain(self) -> Server:
        return Server(id=self.id, name=self.name)


# ===== RESPONSES =====

class DeleteResponseDto(WireModel):
    success: bool
    message: str = ""
    warning: Optional[str] = None


class ClubResponseDto(WireModel):
    """Full club aggregate as returned by GET club."""
    id: str
    name: str
    discord_channel: Optional[str] = None
    server_id: Optional[str] = None
    founded_date: Optional[str] = None
    members: List[MemberDto] = []
    active_session: Optional[SessionDto] = None
    past_sessions: List[SessionDto] = []
    shame_list: List[str] = []

    def to_domain(self) -> Club:
        return Club(
            id=self.id,
            name=self.name,
            discord_channel=self.discord_channel,
            server_id=self.server_id,
            founded_date=parse_date(self.founded_date),
            shame_list=list(self.shame_list),
            members=[m.to_club_member() for m in self.members],
            active_session=(
                self.active_session.to_domain(club_id=self.id) if self.active_session else None
            ),
            past_sessions=[s.to_domain(club_id=self.id) for s in self.past_sessions],
        )


class ClubSuccessResponseDto(WireModel):
    success: bool = True
    message: str = ""
    club: ClubDto


class MemberResponseDto(WireModel):
    """Full member aggregate as returned by GET member."""
    id: str
    name: str
    handle: Optional[str] = None
    avatar_path: Optional[str] = None
    points: int = 0
    books_read: int = 0
    user_id: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[str] = None
    clubs: List[ClubDto] = []
    shame_clubs: List[ClubDto] = []

    def to_domain(self) -> Member:
        return Member(
            id=self.id,
            name=self.name,
            handle=self.handle,
            avatar_path=self.avatar_path,
            points=self.points,
            books_read=self.books_read,
            user_id=self.user_id,
            role=self.role,
            created_at=parse_datetime(self.created_at),
            clubs=[c.to_domain() for c in self.clubs],
            shame_clubs=[c.to_domain() for c in self.shame_clubs],
        )


class MemberSuccessResponseDto(WireModel):
    success: bool = True
    message: str = ""
    member: MemberDto


class SessionResponseDto(WireModel):
    """Session as returned by GET session; the owning club is embedded."""
    id: str
    club: ClubDto
    book: BookDto
    due_date: Optional[str] = None
    discussions: List[DiscussionDto] = []

    def to_domain(self) -> Session:
        return Session(
            id=self.id,
            club_id=self.club.id,
            book=self.book.to_domain(),
            due_date=parse_datetime(self.due_date),
            discussions=[d.to_domain() for d in self.discussions],
        )


class SessionSuccessResponseDto(WireModel):
    success: Optional[bool] = None
    message: str = ""
    session: Optional[SessionDto] = None  # absent when there was nothing to apply


class ServerClubDto(WireModel):
    id: str
    name: str
    discord_channel: Optional[str] = None
    founded_date: Optional[str] = None
    member_count: Optional[int] = None

    def to_domain(self, server_id: str) -> Club:
        return Club(
            id=self.id,
            name=self.name,
            discord_channel=self.discord_channel,
            server_id=server_id,
            founded_date=parse_date(self.founded_date),
        )


class ServerResponseDto(WireModel):
    id: str
    name: str
    clubs: List[ServerClubDto] = []

    def to_domain(self) -> Server:
        return Server(
            id=self.id,
            name=self.name,
            clubs=[c.to_domain(self.id) for c in self.clubs],
        )


class ServersResponseDto(WireModel):
    servers: List[ServerResponseDto] = []


class ServerSuccessResponseDto(WireModel):
    success: bool = True
    message: str = ""
    server: ServerDto


class BookSearchResponseDto(WireModel):
    books: List[BookDto] = []


class BookRegistrationResponseDto(WireModel):
    success: bool = True
    book: BookDto
    created: bool = False
    message: Optional[str] = None


# ===== REQUESTS =====

class WireRequest(WireModel):
    """Patch-style request body."""

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CreateClubRequest(WireRequest):
    name: str
    discord_channel: Optional[str] = None
    server_id: Optional[str] = None
    shame_list: Optional[List[str]] = None


class UpdateClubRequest(WireRequest):
    id: str
    server_id: Optional[str] = None
    name: Optional[str] = None
    discord_channel: Optional[str] = None
    shame_list: Optional[List[str]] = None


class CreateMemberRequest(WireRequest):
    name: str
    points: int = 0
    books_read: int = 0
    user_id: Optional[str] = None
    role: Optional[str] = None
    clubs: Optional[List[str]] = None


class UpdateMemberRequest(WireRequest):
    id: str
    name: Optional[str] = None
    handle: Optional[str] = None
    avatar_path: Optional[str] = None
    points: Optional[int] = None
    books_read: Optional[int] = None
    user_id: Optional[str] = None
    role: Optional[str] = None
    clubs: Optional[List[str]] = None  # full replacement of memberships
    club_roles: Optional[Dict[str, str]] = None  # club_id -> role, only the listed clubs change


class CreateSessionRequest(WireRequest):
    club_id: str
    book: BookDto
    due_date: Optional[str] = None
    discussions: Optional[List[DiscussionDto]] = None


class UpdateSessionRequest(WireRequest):
    id: str
    club_id: Optional[str] = None
    book: Optional[BookDto] = None
    due_date: Optional[str] = None
    discussions: Optional[List[DiscussionDto]] = None  # full replacement
    discussion_ids_to_delete: Optional[List[str]] = None


class CreateServerRequest(WireRequest):
    name: str


class UpdateServerRequest(WireRequest):
    id: str
    name: Optional[str] = None


class CreateBookRequest(WireRequest):
    title: str
    author: str
    edition: Optional[str] = None
    year: Optional[int] = None
    isbn: Optional[str] = None
    page_count: Optional[int] = None
    image_url: Optional[str] = None
    external_google_id: Optional[str] = None

    @classmethod
    def from_domain(cls, book: Book) -> "CreateBookRequest":
        return cls(
            title=book.title,
            author=book.author,
            edition=book.edition,
            year=book.year,
            isbn=book.isbn,
            page_count=book.page_count,
            image_url=book.image_url,
            external_google_id=book.external_id,
        )
