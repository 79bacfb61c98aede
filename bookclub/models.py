"""
Domain models for the reading-club data layer.

Aggregates returned by repositories. Relation fields that may be absent from a
backend response are Optional: None means "not loaded", an empty list means
"loaded, nothing there".
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class Role(Enum):
    """A member's role within a club. Declaration order is seniority order."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "Role":
        """Case-insensitive lookup; unknown or missing values map to MEMBER."""
        if not value:
            return cls.MEMBER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.MEMBER

    @property
    def rank(self) -> int:
        return list(Role).index(self)


class LoadState(Enum):
    """Whether an aggregate was hydrated by its own repository or embedded elsewhere."""
    PARTIAL = "partial"
    COMPLETE = "complete"


@dataclass
class Book:
    title: str
    author: str
    id: Optional[str] = None  # None until registered with the backend
    edition: Optional[str] = None
    year: Optional[int] = None
    isbn: Optional[str] = None
    page_count: Optional[int] = None
    image_url: Optional[str] = None
    external_id: Optional[str] = None


@dataclass
class Discussion:
    id: str  # empty string for a discussion the backend has not created yet
    title: str
    date: datetime
    session_id: Optional[str] = None
    location: Optional[str] = None


@dataclass
class Session:
    id: str
    club_id: str
    book: Book
    due_date: Optional[datetime] = None
    discussions: List[Discussion] = field(default_factory=list)


@dataclass
class Member:
    id: str
    name: str
    handle: Optional[str] = None
    avatar_path: Optional[str] = None
    books_read: int = 0
    points: int = 0
    user_id: Optional[str] = None  # external auth identity
    role: Optional[str] = None
    created_at: Optional[datetime] = None
    clubs: Optional[List["Club"]] = None
    shame_clubs: Optional[List["Club"]] = None


@dataclass
class ClubMember:
    """A member together with their role in one specific club."""
    member: Member
    role: Role = Role.MEMBER


@dataclass
class Club:
    id: str
    name: str
    discord_channel: Optional[str] = None
    server_id: Optional[str] = None
    founded_date: Optional[date] = None
    shame_list: List[str] = field(default_factory=list)
    # Viewer's role; only set when embedded in a member's club list
    role: Optional[str] = None
    members: Optional[List[ClubMember]] = None
    active_session: Optional[Session] = None
    past_sessions: List[Session] = field(default_factory=list)

    @property
    def load_state(self) -> LoadState:
        """
        COMPLETE only when the member list was loaded.

        Clubs embedded in Member or Server payloads never carry members and
        therefore stay PARTIAL.
        """
        return LoadState.COMPLETE if self.members is not None else LoadState.PARTIAL

    @property
    def is_complete(self) -> bool:
        return self.load_state is LoadState.COMPLETE


@dataclass
class Server:
    id: str
    name: str
    clubs: Optional[List[Club]] = None
