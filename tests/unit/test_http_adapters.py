from __future__ import annotations

import httpx
import pytest

from chat_client.application.dto.connectivity import CONNECTION_LOST, SERVER_FAILING
from chat_client.application.exceptions import ApiError, ConnectivityError, UploadError
from chat_client.infrastructure.http.chat_api import HttpChatApi
from chat_client.infrastructure.http.health_probe import HttpHealthProbe
from chat_client.infrastructure.http.rest_client import RestClient
from chat_client.infrastructure.http.uploader import HttpUploader
from chat_client.services.fault_reporter import ConnectivityFaultReporter
from tests.conftest import StaticIdentityProvider

BASE_URL = "http://chat.test/api"


@pytest.fixture
def faults():
    reported = []
    reporter = ConnectivityFaultReporter()
    reporter.register(reported.append)
    return reporter, reported


def _rest(handler, reporter, identity=None) -> RestClient:
    return RestClient(
        BASE_URL,
        reporter,
        identity_provider=StaticIdentityProvider(identity) if identity else None,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_rest_client_sends_bearer_token(faults, student):
    reporter, reported = faults
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=[])

    client = _rest(handler, reporter, student)
    await client.get("/student/chat/rooms")
    await client.aclose()

    assert seen == {
        "url": "http://chat.test/api/student/chat/rooms",
        "auth": "Bearer token-7",
    }
    assert reported == []


@pytest.mark.asyncio
async def test_rest_client_reports_lost_connection(faults):
    reporter, reported = faults

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _rest(handler, reporter)
    with pytest.raises(ConnectivityError):
        await client.get("/student/chat/rooms")

    assert reported == [CONNECTION_LOST]


@pytest.mark.asyncio
async def test_rest_client_reports_server_error(faults):
    reporter, reported = faults
    client = _rest(lambda request: httpx.Response(503, json={"error": "maintenance"}), reporter)

    with pytest.raises(ApiError) as exc_info:
        await client.get("/student/chat/rooms")

    assert exc_info.value.status_code == 503
    assert exc_info.value.detail == "maintenance"
    assert reported == [SERVER_FAILING]


@pytest.mark.asyncio
async def test_client_errors_are_not_connectivity_faults(faults):
    reporter, reported = faults
    client = _rest(lambda request: httpx.Response(404, json={"message": "Room not found"}), reporter)

    with pytest.raises(ApiError) as exc_info:
        await client.get("/student/chat/messages/5")

    assert exc_info.value.status_code == 404
    assert reported == []


@pytest.mark.asyncio
async def test_chat_api_lists_rooms_for_role(faults, faculty):
    reporter, _ = faults
    rows = [
        {
            "room_id": 5,
            "student_name": "Ana Lee",
            "last_message": "thanks",
            "last_message_time": "2024-05-01T09:00:00Z",
            "unread_count": 2,
        },
    ]
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json=rows)

    api = HttpChatApi(_rest(handler, reporter, faculty), StaticIdentityProvider(faculty))
    [room] = await api.list_rooms()

    assert paths == ["/api/faculty/chat/rooms"]
    assert room.id == 5
    assert room.participant_name == "Ana Lee"
    assert room.unread_count == 2
    assert room.last_message_at.tzinfo is not None


@pytest.mark.asyncio
async def test_chat_api_history_and_broadcast(faults, faculty):
    reporter, _ = faults
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path, request.content))
        if request.url.path.endswith("/broadcast"):
            return httpx.Response(200, json={"successCount": 9, "totalStudents": 12})
        return httpx.Response(200, json=[
            {"id": 1, "sender_id": 3, "sender_type": "faculty", "message": "Hi", "created_at": "2024-05-01T09:00:00"},
        ])

    api = HttpChatApi(_rest(handler, reporter, faculty), StaticIdentityProvider(faculty))
    [message] = await api.list_messages(5)
    result = await api.broadcast("Exam moved to Friday", "text")

    assert message.room_id == 5
    assert message.sender_role == "faculty"
    assert result.summary == "sent to 9 out of 12"
    assert requests[1][:2] == ("POST", "/api/faculty/chat/broadcast")
    assert b'"messageType":"text"' in requests[1][2].replace(b" ", b"")


@pytest.mark.asyncio
async def test_health_probe():
    ok = HttpHealthProbe("http://chat.test/api/auth/health", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    failing = HttpHealthProbe("http://chat.test/api/auth/health", transport=httpx.MockTransport(lambda r: httpx.Response(502)))

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    unreachable = HttpHealthProbe("http://chat.test/api/auth/health", transport=httpx.MockTransport(refuse))

    assert await ok.probe() is True
    assert await failing.probe() is False
    assert await unreachable.probe() is False


@pytest.mark.asyncio
async def test_uploader_returns_file_url(faults, tmp_path):
    reporter, _ = faults
    photo = tmp_path / "photo.png"
    photo.write_bytes(b"\x89PNG")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/upload/file"
        assert b"photo.png" in request.content
        return httpx.Response(200, json={"success": True, "file": {"url": "https://files/photo.png"}})

    uploader = HttpUploader(_rest(handler, reporter))

    assert await uploader.upload(str(photo)) == "https://files/photo.png"


@pytest.mark.asyncio
async def test_uploader_failure(faults, tmp_path):
    reporter, _ = faults
    photo = tmp_path / "photo.png"
    photo.write_bytes(b"\x89PNG")
    uploader = HttpUploader(_rest(lambda r: httpx.Response(200, json={"success": False}), reporter))

    with pytest.raises(UploadError):
        await uploader.upload(str(photo))
    with pytest.raises(UploadError):
        await uploader.upload(str(tmp_path / "missing.png"))
