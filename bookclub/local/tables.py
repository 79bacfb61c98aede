"""
ORM rows for the local cache.

Aggregates are stored normalized: club membership lives in the club_members
join table, sessions and discussions in their own tables. Every entity row
carries last_fetched_at for freshness checks; the *_loaded flags record whether
a relation collection was present in the payload that produced the row.
"""
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ServerRow(Base):
    __tablename__ = "servers"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    club_ids = Column(JSON, nullable=True)  # None = clubs not loaded
    last_fetched_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ServerRow(id={self.id}, name='{self.name}')>"


class ClubRow(Base):
    __tablename__ = "clubs"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    server_id = Column(String, nullable=True, index=True)
    discord_channel = Column(String, nullable=True)
    founded_date = Column(Date, nullable=True)
    shame_list = Column(JSON, nullable=False, default=list)
    members_loaded = Column(Boolean, nullable=False, default=False)
    active_session_id = Column(String, nullable=True)
    past_session_ids = Column(JSON, nullable=False, default=list)
    last_fetched_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ClubRow(id={self.id}, name='{self.name}', members_loaded={self.members_loaded})>"


class MemberRow(Base):
    __tablename__ = "members"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    handle = Column(String, nullable=True)
    avatar_path = Column(String, nullable=True)
    points = Column(Integer, nullable=False, default=0)
    books_read = Column(Integer, nullable=False, default=0)
    role = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=True)
    clubs_loaded = Column(Boolean, nullable=False, default=False)
    shame_club_ids = Column(JSON, nullable=True)  # None = not loaded
    last_fetched_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<MemberRow(id={self.id}, name='{self.name}')>"


class ClubMemberRow(Base):
    """Club membership join. position orders a club's member list, member_position a member's club list."""
    __tablename__ = "club_members"

    club_id = Column(String, primary_key=True)
    member_id = Column(String, primary_key=True, index=True)
    role = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    member_position = Column(Integer, nullable=False, default=0)


class BookRow(Base):
    __tablename__ = "books"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    edition = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    isbn = Column(String, nullable=True)
    page_count = Column(Integer, nullable=True)
    image_url = Column(String, nullable=True)
    external_id = Column(String, nullable=True)
    last_fetched_at = Column(DateTime, nullable=True)


class SessionRow(Base):
    __tablename__ = "sessions"

    id = Column(String, primary_key=True)
    club_id = Column(String, nullable=False, index=True)
    book_id = Column(String, nullable=True)
    due_date = Column(DateTime, nullable=True)
    last_fetched_at = Column(DateTime, nullable=True)


class DiscussionRow(Base):
    __tablename__ = "discussions"

    session_id = Column(String, primary_key=True)
    position = Column(Integer, primary_key=True)
    id = Column(String, nullable=False)
    discussion_session_id = Column(String, nullable=True)
    title = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)
    location = Column(String, nullable=True)
