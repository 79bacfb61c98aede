"""
Session repository.
"""
from datetime import datetime
from typing import List, Optional

from bookclub.cache.ttl_policies import EntityType
from bookclub.models import Book, Discussion, Session
from bookclub.remote.schemas import (
    BookDto,
    CreateSessionRequest,
    DiscussionDto,
    UpdateSessionRequest,
    format_datetime,
)
from bookclub.result import Result
from .base import CachedRepository


def _discussion_dtos(discussions: Optional[List[Discussion]]) -> Optional[List[DiscussionDto]]:
    if discussions is None:
        return None
    return [DiscussionDto.from_domain(d) for d in discussions]


class SessionRepository(CachedRepository[Session]):
    entity_type = EntityType.SESSION

    async def get_session(self, session_id: str, force_refresh: bool = False) -> Result[Session]:
        return await self._read_through(
            session_id,
            lambda: self.remote.get(session_id),
            force_refresh=force_refresh,
        )

    async def create_session(
        self,
        club_id: str,
        book: Book,
        due_date: Optional[datetime] = None,
        discussions: Optional[List[Discussion]] = None,
    ) -> Result[Session]:
        request = CreateSessionRequest(
            club_id=club_id,
            book=BookDto.from_domain(book),
            due_date=format_datetime(due_date),
            discussions=_discussion_dtos(discussions),
        )
        return await self._write("create", self.remote.create(request))

    async def update_session(
        self,
        session_id: str,
        club_id: Optional[str] = None,
        book: Optional[Book] = None,
        due_date: Optional[datetime] = None,
        discussions: Optional[List[Discussion]] = None,
        discussion_ids_to_delete: Optional[List[str]] = None,
    ) -> Result[Session]:
        """
        Patch a session. A discussions list replaces the stored list; ids in
        discussion_ids_to_delete are removed on the backend.
        """
        request = UpdateSessionRequest(
            id=session_id,
            club_id=club_id,
            book=BookDto.from_domain(book) if book is not None else None,
            due_date=format_datetime(due_date),
            discussions=_discussion_dtos(discussions),
            discussion_ids_to_delete=discussion_ids_to_delete,
        )
        return await self._write("update", self.remote.update(request))

    async def delete_session(self, session_id: str) -> Result[str]:
        return await self._remove(session_id, self.remote.delete(session_id))
