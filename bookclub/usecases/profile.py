"""
Current-user profile: statistics, display profile, edits and avatar.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bookclub.errors import InvalidOperation
from bookclub.models import Member
from bookclub.remote import AvatarRemoteSource
from bookclub.repositories import MemberRepository
from bookclub.result import Result

logger = logging.getLogger("usecases.profile")

HANDLE_PATTERN = re.compile(r"^[a-zA-Z0-9_]{2,30}$")


@dataclass
class UserStatistics:
    clubs_count: int
    books_read: int


@dataclass
class UserProfile:
    member_id: str
    name: str
    handle: str
    join_year: Optional[int] = None
    avatar_path: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass
class EditableProfile:
    """Current values for the profile form. The handle has no '@' prefix."""
    member_id: str
    name: str
    handle: str


def handle_from_name(name: str) -> str:
    """'John Doe' -> '@johndoe'"""
    return "@" + name.lower().replace(" ", "")


class ProfileService:
    def __init__(self, members: MemberRepository, avatars: Optional[AvatarRemoteSource] = None):
        self.members = members
        self.avatars = avatars

    def _avatar_url(self, avatar_path: Optional[str]) -> Optional[str]:
        if self.avatars is None:
            return None
        return self.avatars.get_avatar_url(avatar_path)

    async def get_user_statistics(self, user_id: str) -> Result[UserStatistics]:
        result = await self.members.get_member_by_user_id(user_id)
        if result.is_failure:
            logger.error(f"Failed to load statistics for user {user_id}: {result.error.message}")
            return Result.failure(result.error)
        member = result.value
        return Result.success(UserStatistics(
            clubs_count=len(member.clubs or []),
            books_read=member.books_read,
        ))

    async def get_current_user_profile(self, user_id: str) -> Result[UserProfile]:
        result = await self.members.get_member_by_user_id(user_id)
        if result.is_failure:
            logger.error(f"Failed to load profile for user {user_id}: {result.error.message}")
            return Result.failure(result.error)
        member = result.value
        return Result.success(UserProfile(
            member_id=member.id,
            name=member.name,
            handle=member.handle or handle_from_name(member.name),
            join_year=member.created_at.year if member.created_at else None,
            avatar_path=member.avatar_path,
            avatar_url=self._avatar_url(member.avatar_path),
        ))

    async def get_editable_profile(self, user_id: str) -> Result[EditableProfile]:
        result = await self.members.get_member_by_user_id(user_id)
        return result.map(_editable_profile).on_failure(
            lambda error: logger.error(f"Failed to load editable profile for user {user_id}: {error.message}")
        )

    async def update_user_profile(self, member_id: str, name: str, handle: str) -> Result[None]:
        """
        Save a new display name and handle.

        The handle is given without its '@' prefix and must be 2-30 letters,
        digits or underscores. Validation failures return InvalidOperation
        before anything is sent.
        """
        if not name.strip():
            return Result.failure(InvalidOperation("Name must not be blank"))
        if not handle.strip():
            return Result.failure(InvalidOperation("Handle must not be blank"))
        if not HANDLE_PATTERN.match(handle):
            logger.warning(f"Rejected handle '{handle}'")
            return Result.failure(InvalidOperation(
                "Handle must be 2-30 characters: letters, numbers or underscores only"
            ))

        result = await self.members.update_member(member_id, name=name, handle=f"@{handle}")
        if result.is_failure:
            logger.error(f"Failed to update profile for member {member_id}: {result.error.message}")
            return Result.failure(result.error)
        return Result.success(None)

    async def update_avatar(self, member_id: str, image_data: bytes) -> Result[str]:
        """
        Upload a new avatar, point the member at it and drop the old image.

        Returns the public URL of the new avatar. Failing to delete the old
        image is logged and does not fail the update.
        """
        if self.avatars is None:
            return Result.failure(InvalidOperation("Avatar storage is not configured"))
        if not image_data:
            return Result.failure(InvalidOperation("Avatar image is empty"))

        current = await self.members.get_member(member_id)
        old_path = current.value.avatar_path if current.is_success else None

        uploaded = await self.avatars.upload_avatar(member_id, image_data)
        if uploaded.is_failure:
            return Result.failure(uploaded.error)
        new_path = uploaded.value

        saved = await self.members.update_member(member_id, avatar_path=new_path)
        if saved.is_failure:
            logger.error(f"Uploaded avatar {new_path} but failed to save it on member {member_id}")
            return Result.failure(saved.error)

        if old_path and old_path != new_path:
            deleted = await self.avatars.delete_avatar(old_path)
            deleted.on_failure(lambda error: logger.warning(f"Old avatar {old_path} left in storage: {error.message}"))

        return Result.success(self.avatars.get_avatar_url(new_path) or "")


def _editable_profile(member: Member) -> EditableProfile:
    handle = member.handle or handle_from_name(member.name)
    return EditableProfile(member_id=member.id, name=member.name, handle=handle.lstrip("@"))
