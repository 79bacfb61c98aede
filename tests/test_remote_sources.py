"""
Tests for the backend client, the remote sources and wire schema conversion.
"""
import asyncio
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
import requests

from bookclub.errors import RemoteFailure
from bookclub.models import Role
from bookclub.remote import (
    AvatarRemoteSource,
    BackendClient,
    BookRemoteSource,
    ClubRemoteSource,
    MemberRemoteSource,
    ServerRemoteSource,
    SessionRemoteSource,
)
from bookclub.remote.schemas import (
    ClubResponseDto,
    MemberResponseDto,
    UpdateClubRequest,
    UpdateSessionRequest,
    parse_datetime,
)


def make_response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    response.reason = "Error"
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http):
    return BackendClient(base_url="https://api.test/functions/v1/", api_key="secret", timeout=5, session=http)


CLUB_PAYLOAD = {
    "id": 7,
    "name": "Sci-Fi Circle",
    "discord_channel": 1234,
    "server_id": 1,
    "founded_date": "2021-06-01",
    "shame_list": [3],
    "members": [
        {"id": 3, "name": "Cleo Park", "role": "member", "user_id": "u3", "books_read": 5},
        {"id": 1, "name": "Ana Reyes", "role": "OWNER", "user_id": "u1"},
    ],
    "active_session": {
        "id": 11,
        "book": {"id": 2, "title": "Dune", "author": "Frank Herbert", "year": 1965},
        "due_date": "2025-03-30",
        "discussions": [
            {"id": 5, "title": "Part One", "date": "2025-03-10T19:00:00Z", "location": "Library"},
        ],
    },
    "past_sessions": [],
}


# =============================================================================
# Client
# =============================================================================

class TestBackendClient:

    def test_request_shape(self, client, http):
        http.request.return_value = make_response(body={"ok": True})

        data = asyncio.run(client.request("GET", "club", params={"id": "7", "server_id": None}))

        assert data == {"ok": True}
        args, kwargs = http.request.call_args
        assert args == ("GET", "https://api.test/functions/v1/club")
        assert kwargs["params"] == {"id": "7"}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["apikey"] == "secret"
        assert kwargs["timeout"] == 5

    def test_error_status_raises(self, client, http):
        http.request.return_value = make_response(404, body={"error": "Club not found"})

        with pytest.raises(RemoteFailure) as exc_info:
            asyncio.run(client.request("GET", "club", params={"id": "9"}))

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Club not found"

    def test_error_status_with_text_body(self, client, http):
        http.request.return_value = make_response(500, text="Internal Server Error")

        with pytest.raises(RemoteFailure) as exc_info:
            asyncio.run(client.request("GET", "club"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal Server Error"

    def test_transport_error_raises(self, client, http):
        http.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(RemoteFailure) as exc_info:
            asyncio.run(client.request("GET", "club"))

        assert exc_info.value.status_code is None

    def test_non_json_body_raises(self, client, http):
        http.request.return_value = make_response(200, text="<html>")

        with pytest.raises(RemoteFailure):
            asyncio.run(client.request("GET", "club"))

    def test_raw_body_with_header_override(self, client, http):
        http.request.return_value = make_response(body={"Key": "member-avatars/m3/1.png"})

        asyncio.run(client.request("POST", "object/member-avatars/m3/1.png", data=b"img",
                                   headers={"Content-Type": "image/png"}))

        kwargs = http.request.call_args.kwargs
        assert kwargs["data"] == b"img"
        assert kwargs["json"] is None
        assert kwargs["headers"]["Content-Type"] == "image/png"
        assert kwargs["headers"]["apikey"] == "secret"


# =============================================================================
# Sources
# =============================================================================

class TestClubSource:

    def test_get_converts_payload(self, client, http):
        http.request.return_value = make_response(body=CLUB_PAYLOAD)

        result = asyncio.run(ClubRemoteSource(client).get("7"))

        club = result.value
        assert club.id == "7"
        assert club.discord_channel == "1234"
        assert club.founded_date == date(2021, 6, 1)
        assert club.shame_list == ["3"]
        assert [(cm.member.id, cm.role) for cm in club.members] == [("3", Role.MEMBER), ("1", Role.OWNER)]
        assert club.is_complete
        assert club.active_session.club_id == "7"
        assert club.active_session.due_date == datetime(2025, 3, 30, 17, 0)
        assert club.active_session.discussions[0].date == datetime(2025, 3, 10, 19, 0)

    def test_invalid_payload_is_failure(self, client, http):
        http.request.return_value = make_response(body={"name": "no id"})

        result = asyncio.run(ClubRemoteSource(client).get("7"))

        assert isinstance(result.error, RemoteFailure)

    def test_backend_error_is_failure(self, client, http):
        http.request.return_value = make_response(403, body={"error": "Forbidden"})

        result = asyncio.run(ClubRemoteSource(client).get("7"))

        assert result.error.status_code == 403

    def test_update_returns_partial_club(self, client, http):
        http.request.return_value = make_response(body={
            "success": True,
            "club": {"id": 7, "name": "Space Readers", "server_id": 1},
        })
        request = UpdateClubRequest(id="7", name="Space Readers")

        club = asyncio.run(ClubRemoteSource(client).update(request)).value

        assert club.name == "Space Readers"
        assert not club.is_complete
        assert http.request.call_args.kwargs["json"] == {"id": "7", "name": "Space Readers"}

    def test_delete(self, client, http):
        http.request.return_value = make_response(body={"success": True, "message": "Club deleted"})

        result = asyncio.run(ClubRemoteSource(client).delete("7", server_id="1"))

        assert result.value == "Club deleted"
        assert http.request.call_args.args[0] == "DELETE"
        assert http.request.call_args.kwargs["params"] == {"id": "7", "server_id": "1"}

    def test_delete_unsuccessful(self, client, http):
        http.request.return_value = make_response(body={"success": False, "message": "Still has members"})

        result = asyncio.run(ClubRemoteSource(client).delete("7"))

        assert result.error.message == "Still has members"


class TestMemberSource:

    def test_get_by_user_id(self, client, http):
        http.request.return_value = make_response(body={
            "id": 3,
            "name": "Cleo Park",
            "user_id": "u3",
            "created_at": "2023-01-15T09:30:00+02:00",
            "clubs": [{"id": 7, "name": "Sci-Fi Circle", "role": "admin"}],
            "shame_clubs": [],
        })

        member = asyncio.run(MemberRemoteSource(client).get_by_user_id("u3")).value

        assert http.request.call_args.kwargs["params"] == {"user_id": "u3"}
        assert member.created_at == datetime(2023, 1, 15, 7, 30)
        assert member.clubs[0].role == "admin"
        assert member.shame_clubs == []


class TestSessionSource:

    def test_update_without_body_refetches(self, client, http):
        http.request.side_effect = [
            make_response(body={"message": "No changes to apply"}),
            make_response(body={
                "id": 11,
                "club": {"id": 7, "name": "Sci-Fi Circle"},
                "book": {"id": 2, "title": "Dune", "author": "Frank Herbert"},
                "discussions": [],
            }),
        ]

        result = asyncio.run(SessionRemoteSource(client).update(UpdateSessionRequest(id="11")))

        assert result.value.id == "11"
        assert result.value.club_id == "7"
        assert [c.args[0] for c in http.request.call_args_list] == ["PUT", "GET"]

    def test_update_with_body(self, client, http):
        http.request.return_value = make_response(body={
            "success": True,
            "session": {
                "id": 11,
                "book": {"id": 2, "title": "Dune", "author": "Frank Herbert"},
                "discussions": [{"id": 6, "title": "Part Two", "date": "2025-03-20"}],
            },
        })

        session = asyncio.run(SessionRemoteSource(client).update(UpdateSessionRequest(id="11", club_id="7"))).value

        assert session.club_id == "7"
        assert session.discussions[0].date == datetime(2025, 3, 20, 17, 0)


class TestServerAndBookSources:

    def test_get_all_servers(self, client, http):
        http.request.return_value = make_response(body={"servers": [
            {"id": 1, "name": "Readers Guild", "clubs": [{"id": 7, "name": "Sci-Fi Circle"}]},
        ]})

        servers = asyncio.run(ServerRemoteSource(client).get_all()).value

        assert servers[0].clubs[0].server_id == "1"

    def test_search(self, client, http):
        http.request.return_value = make_response(body={"books": [
            {"title": "Dune", "author": "Frank Herbert", "external_google_id": "g123"},
        ]})

        books = asyncio.run(BookRemoteSource(client).search("dune", limit=3)).value

        assert books[0].id is None
        assert books[0].external_id == "g123"
        assert http.request.call_args.kwargs["params"] == {"q": "dune", "limit": 3}


class TestAvatarSource:

    @pytest.fixture
    def avatars(self, http, clock):
        storage = BackendClient(base_url="https://api.test/storage/v1", api_key="secret", session=http)
        return AvatarRemoteSource(storage, bucket="member-avatars", clock=clock)

    def test_public_url(self, avatars):
        assert avatars.get_avatar_url("m3/1.png") == "https://api.test/storage/v1/object/public/member-avatars/m3/1.png"

    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_no_url_without_path(self, avatars, path):
        assert avatars.get_avatar_url(path) is None

    def test_upload_uses_timestamped_path(self, avatars, http):
        http.request.return_value = make_response(body={"Key": "ok"})

        result = asyncio.run(avatars.upload_avatar("m3", b"img"))

        assert result.value == "m3/1740830400000.png"
        args, kwargs = http.request.call_args
        assert args == ("POST", "https://api.test/storage/v1/object/member-avatars/m3/1740830400000.png")
        assert kwargs["data"] == b"img"
        assert kwargs["headers"]["x-upsert"] == "true"

    def test_upload_failure(self, avatars, http):
        http.request.return_value = make_response(413, body={"error": "Payload too large"})

        result = asyncio.run(avatars.upload_avatar("m3", b"img"))

        assert result.error.status_code == 413

    def test_delete(self, avatars, http):
        http.request.return_value = make_response(body=[{"name": "m3/1.png"}])

        result = asyncio.run(avatars.delete_avatar("m3/1.png"))

        assert result.is_success
        assert http.request.call_args.args == ("DELETE", "https://api.test/storage/v1/object/member-avatars")
        assert http.request.call_args.kwargs["json"] == {"prefixes": ["m3/1.png"]}

    def test_delete_failure(self, avatars, http):
        http.request.side_effect = requests.ConnectionError("refused")

        assert asyncio.run(avatars.delete_avatar("m3/1.png")).is_failure


# =============================================================================
# Schemas
# =============================================================================

class TestSchemas:

    def test_date_only_defaults_to_evening(self):
        assert parse_datetime("2025-04-01") == datetime(2025, 4, 1, 17, 0)

    def test_blank_datetime(self):
        assert parse_datetime("") is None
        assert parse_datetime(None) is None

    def test_unknown_fields_ignored(self):
        dto = ClubResponseDto.model_validate({"id": 1, "name": "X", "color": "blue"})

        assert dto.to_domain().members == []

    def test_member_without_clubs_has_empty_lists(self):
        member = MemberResponseDto.model_validate({"id": 1, "name": "Dee"}).to_domain()

        assert member.clubs == []
        assert member.shame_clubs == []

    def test_payload_excludes_unset_fields(self):
        request = UpdateClubRequest(id="7", shame_list=[])

        assert request.to_payload() == {"id": "7", "shame_list": []}
