"""
Use cases: role-gated club administration, read queries, profile and account.
"""
from .account import clear_stores, sign_out_cleanup
from .clubs import (
    ClubAdminOperations,
    CreateDiscussionParams,
    CreateSessionParams,
    DeleteClubParams,
    DeleteDiscussionParams,
    DeleteSessionParams,
    RemoveMemberParams,
    UpdateClubParams,
    UpdateDiscussionParams,
    UpdateMemberRoleParams,
    UpdateSessionParams,
)
from .gate import ADMIN_AND_ABOVE, OWNER_ONLY, AdminOperation, authorize_then_run
from .profile import EditableProfile, ProfileService, UserProfile, UserStatistics
from .queries import (
    ActiveSessionDetails,
    ClubDetails,
    ClubListItem,
    ClubQueries,
    CurrentlyReadingBook,
    MemberListItem,
)

__all__ = [
    "AdminOperation",
    "authorize_then_run",
    "OWNER_ONLY",
    "ADMIN_AND_ABOVE",
    "ClubAdminOperations",
    "CreateDiscussionParams",
    "UpdateDiscussionParams",
    "DeleteDiscussionParams",
    "UpdateMemberRoleParams",
    "RemoveMemberParams",
    "CreateSessionParams",
    "UpdateSessionParams",
    "DeleteSessionParams",
    "UpdateClubParams",
    "DeleteClubParams",
    "ClubQueries",
    "ClubDetails",
    "ActiveSessionDetails",
    "MemberListItem",
    "ClubListItem",
    "CurrentlyReadingBook",
    "ProfileService",
    "UserProfile",
    "UserStatistics",
    "EditableProfile",
    "clear_stores",
    "sign_out_cleanup",
]
