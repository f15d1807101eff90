from __future__ import annotations

from typing import Protocol

from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room


class ChatApi(Protocol):
    async def list_rooms(self) -> list[Room]: ...

    async def list_messages(self, room_id: int) -> list[Message]: ...

    async def edit_message(self, message_id: int, body: str) -> None: ...

    async def delete_message(self, message_id: int) -> None: ...

    async def broadcast(self, body: str, kind: str) -> BroadcastResult: ...
