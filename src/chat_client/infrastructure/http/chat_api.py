"""REST endpoints of the campus backend used by the chat core."""
from __future__ import annotations

from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.dto.wire import (
    BroadcastRequest,
    BroadcastResponse,
    NewMessageEvent,
    RoomRow,
)
from chat_client.application.ports.auth import IdentityProvider
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room
from chat_client.infrastructure.http.rest_client import RestClient


class HttpChatApi:
    """Implements application.ports.chat_api.ChatApi.

    Room and history routes are scoped by role (``/student/...`` or
    ``/faculty/...``), matching the identity of the current session.
    """

    def __init__(self, client: RestClient, identity_provider: IdentityProvider) -> None:
        self._client = client
        self._identity_provider = identity_provider

    async def _scope(self) -> str:
        identity = await self._identity_provider.current()
        return f"/{identity.role.value}/chat"

    async def list_rooms(self) -> list[Room]:
        resp = await self._client.get(f"{await self._scope()}/rooms")
        return [RoomRow.model_validate(row).to_entity() for row in resp.json()]

    async def list_messages(self, room_id: int) -> list[Message]:
        resp = await self._client.get(f"{await self._scope()}/messages/{room_id}")
        return [
            NewMessageEvent.model_validate({**row, "room_id": row.get("room_id", room_id)}).to_entity()
            for row in resp.json()
        ]

    async def edit_message(self, message_id: int, body: str) -> None:
        await self._client.put(
            f"{await self._scope()}/messages/{message_id}",
            json={"message": body},
        )

    async def delete_message(self, message_id: int) -> None:
        await self._client.delete(f"{await self._scope()}/messages/{message_id}")

    async def broadcast(self, body: str, kind: str) -> BroadcastResult:
        payload = BroadcastRequest(message=body, message_type=kind)
        resp = await self._client.post("/faculty/chat/broadcast", json=payload.to_wire())
        data = BroadcastResponse.model_validate(resp.json())
        return BroadcastResult(
            success_count=data.success_count,
            total_students=data.total_students,
        )
