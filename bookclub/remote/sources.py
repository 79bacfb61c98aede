"""
Remote sources: one per entity, each wrapping a backend function.

Every method returns a Result. Transport failures, error statuses and payloads
that fail validation all come back as RemoteFailure; nothing raises.
"""
import logging
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from bookclub.cache.core import Clock, SystemClock
from bookclub.errors import RemoteFailure
from bookclub.models import Book, Club, Member, Server, Session
from bookclub.result import Result
from .client import BackendClient
from .schemas import (
    BookRegistrationResponseDto,
    BookSearchResponseDto,
    ClubResponseDto,
    ClubSuccessResponseDto,
    CreateBookRequest,
    CreateClubRequest,
    CreateMemberRequest,
    CreateServerRequest,
    CreateSessionRequest,
    DeleteResponseDto,
    MemberResponseDto,
    MemberSuccessResponseDto,
    ServerResponseDto,
    ServersResponseDto,
    ServerSuccessResponseDto,
    SessionResponseDto,
    SessionSuccessResponseDto,
    UpdateClubRequest,
    UpdateMemberRequest,
    UpdateServerRequest,
    UpdateSessionRequest,
)

logger = logging.getLogger("remote.sources")

E = TypeVar("E")
T = TypeVar("T")


class RemoteSource(ABC, Generic[E]):
    """Contract every per-entity remote source satisfies."""

    @abstractmethod
    async def get(self, entity_id: str) -> Result[E]:
        ...

    @abstractmethod
    async def create(self, request: Any) -> Result[E]:
        ...

    @abstractmethod
    async def update(self, request: Any) -> Result[E]:
        ...

    @abstractmethod
    async def delete(self, entity_id: str) -> Result[str]:
        ...


class BackendSource:
    """Shared call/convert plumbing over a BackendClient."""

    function: str = ""

    def __init__(self, client: BackendClient):
        self.client = client

    async def _call(
        self,
        method: str,
        parse: Callable[[Any], T],
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Result[T]:
        try:
            data = await self.client.request(method, self.function, params=params, payload=payload)
        except RemoteFailure as e:
            return Result.failure(e)

        try:
            return Result.success(parse(data))
        except ValueError as e:
            # pydantic.ValidationError is a ValueError
            logger.error(f"Invalid {self.function} payload from {method}: {e}")
            return Result.failure(RemoteFailure(f"Invalid {self.function} response: {e}"))

    async def _delete(self, params: Dict[str, Any]) -> Result[str]:
        result = await self._call("DELETE", DeleteResponseDto.model_validate, params=params)
        if result.is_failure:
            return Result.failure(result.error)
        response = result.value
        if not response.success:
            return Result.failure(RemoteFailure(response.message or f"Failed to delete {self.function}"))
        if response.warning:
            logger.warning(f"Delete {self.function} {params}: {response.warning}")
        return Result.success(response.message)


class ClubRemoteSource(BackendSource, RemoteSource[Club]):
    function = "club"

    async def get(self, entity_id: str, server_id: Optional[str] = None) -> Result[Club]:
        return await self._call(
            "GET",
            lambda data: ClubResponseDto.model_validate(data).to_domain(),
            params={"id": entity_id, "server_id": server_id},
        )

    async def create(self, request: CreateClubRequest) -> Result[Club]:
        return await self._call(
            "POST",
            lambda data: ClubSuccessResponseDto.model_validate(data).club.to_domain(),
            payload=request.to_payload(),
        )

    async def update(self, request: UpdateClubRequest) -> Result[Club]:
        return await self._call(
            "PUT",
            lambda data: ClubSuccessResponseDto.model_validate(data).club.to_domain(),
            payload=request.to_payload(),
        )

    async def delete(self, entity_id: str, server_id: Optional[str] = None) -> Result[str]:
        return await self._delete({"id": entity_id, "server_id": server_id})


class MemberRemoteSource(BackendSource, RemoteSource[Member]):
    function = "member"

    async def get(self, entity_id: str) -> Result[Member]:
        return await self._call(
            "GET",
            lambda data: MemberResponseDto.model_validate(data).to_domain(),
            params={"id": entity_id},
        )

    async def get_by_user_id(self, user_id: str) -> Result[Member]:
        return await self._call(
            "GET",
            lambda data: MemberResponseDto.model_validate(data).to_domain(),
            params={"user_id": user_id},
        )

    async def create(self, request: CreateMemberRequest) -> Result[Member]:
        return await self._call(
            "POST",
            lambda data: MemberSuccessResponseDto.model_validate(data).member.to_domain(),
            payload=request.to_payload(),
        )

    async def update(self, request: UpdateMemberRequest) -> Result[Member]:
        return await self._call(
            "PUT",
            lambda data: MemberSuccessResponseDto.model_validate(data).member.to_domain(),
            payload=request.to_payload(),
        )

    async def delete(self, entity_id: str) -> Result[str]:
        return await self._delete({"id": entity_id})


class SessionRemoteSource(BackendSource, RemoteSource[Session]):
    function = "session"

    async def get(self, entity_id: str) -> Result[Session]:
        return await self._call(
            "GET",
            lambda data: SessionResponseDto.model_validate(data).to_domain(),
            params={"id": entity_id},
        )

    async def create(self, request: CreateSessionRequest) -> Result[Session]:
        result = await self._call(
            "POST", SessionSuccessResponseDto.model_validate, payload=request.to_payload()
        )
        return await self._session_from(result, request.club_id, None)

    async def update(self, request: UpdateSessionRequest) -> Result[Session]:
        result = await self._call(
            "PUT", SessionSuccessResponseDto.model_validate, payload=request.to_payload()
        )
        return await self._session_from(result, request.club_id, request.id)

    async def _session_from(
        self,
        result: Result[SessionSuccessResponseDto],
        club_id: Optional[str],
        session_id: Optional[str],
    ) -> Result[Session]:
        if result.is_failure:
            return Result.failure(result.error)
        response = result.value
        if response.session is None:
            # "No changes to apply": the backend echoes nothing, read it back
            if session_id is None:
                return Result.failure(RemoteFailure(response.message or "Session was not created"))
            logger.info(f"Session {session_id} update returned no body, re-fetching")
            return await self.get(session_id)
        try:
            return Result.success(response.session.to_domain(club_id=club_id))
        except ValueError as e:
            return Result.failure(RemoteFailure(f"Invalid session response: {e}"))

    async def delete(self, entity_id: str) -> Result[str]:
        return await self._delete({"id": entity_id})


class ServerRemoteSource(BackendSource, RemoteSource[Server]):
    function = "server"

    async def get(self, entity_id: str) -> Result[Server]:
        return await self._call(
            "GET",
            lambda data: ServerResponseDto.model_validate(data).to_domain(),
            params={"id": entity_id},
        )

    async def get_all(self) -> Result[List[Server]]:
        return await self._call(
            "GET",
            lambda data: [s.to_domain() for s in ServersResponseDto.model_validate(data).servers],
        )

    async def create(self, request: CreateServerRequest) -> Result[Server]:
        return await self._call(
            "POST",
            lambda data: ServerSuccessResponseDto.model_validate(data).server.to_domain(),
            payload=request.to_payload(),
        )

    async def update(self, request: UpdateServerRequest) -> Result[Server]:
        return await self._call(
            "PUT",
            lambda data: ServerSuccessResponseDto.model_validate(data).server.to_domain(),
            payload=request.to_payload(),
        )

    async def delete(self, entity_id: str) -> Result[str]:
        return await self._delete({"id": entity_id})


class BookRemoteSource(BackendSource):
    """Books are searched and registered, never fetched or edited by id."""
    function = "book"

    async def search(self, query: str, limit: Optional[int] = None) -> Result[List[Book]]:
        return await self._call(
            "GET",
            lambda data: [b.to_domain() for b in BookSearchResponseDto.model_validate(data).books],
            params={"q": query, "limit": limit},
        )

    async def register(self, request: CreateBookRequest) -> Result[Book]:
        return await self._call(
            "POST",
            lambda data: BookRegistrationResponseDto.model_validate(data).book.to_domain(),
            payload=request.to_payload(),
        )


class AvatarRemoteSource:
    """
    Member avatars in object storage.

    Objects live at '<member_id>/<epoch millis>.png' inside one bucket, so each
    upload gets a fresh path and the previous image can be deleted afterwards.
    The client passed in must point at the storage base URL.
    """

    def __init__(self, client: BackendClient, bucket: str = "member-avatars", clock: Optional[Clock] = None):
        self.client = client
        self.bucket = bucket
        self.clock = clock or SystemClock()

    def get_avatar_url(self, avatar_path: Optional[str]) -> Optional[str]:
        """Public URL for a stored avatar; None for a missing or blank path."""
        if not avatar_path or not avatar_path.strip():
            return None
        return f"{self.client.base_url}/object/public/{self.bucket}/{avatar_path}"

    def _new_path(self, member_id: str) -> str:
        stamp = int(self.clock.now().replace(tzinfo=timezone.utc).timestamp() * 1000)
        return f"{member_id}/{stamp}.png"

    async def upload_avatar(self, member_id: str, image_data: bytes) -> Result[str]:
        path = self._new_path(member_id)
        logger.debug(f"Uploading avatar for member {member_id} ({len(image_data)} bytes)")
        try:
            await self.client.request(
                "POST",
                f"object/{self.bucket}/{path}",
                data=image_data,
                headers={"Content-Type": "image/png", "x-upsert": "true"},
            )
        except RemoteFailure as e:
            logger.error(f"Avatar upload failed for member {member_id}: {e.message}")
            return Result.failure(e)
        logger.info(f"Uploaded avatar for member {member_id} to {path}")
        return Result.success(path)

    async def delete_avatar(self, avatar_path: str) -> Result[None]:
        try:
            await self.client.request("DELETE", f"object/{self.bucket}", payload={"prefixes": [avatar_path]})
        except RemoteFailure as e:
            logger.error(f"Avatar delete failed for {avatar_path}: {e.message}")
            return Result.failure(e)
        return Result.success(None)
