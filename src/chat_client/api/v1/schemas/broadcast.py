from __future__ import annotations

from pydantic import BaseModel

from chat_client.domain.value_objects.enums import MessageKind


class BroadcastRequest(BaseModel):
    body: str
    kind: MessageKind = MessageKind.TEXT


class BroadcastResponse(BaseModel):
    success_count: int
    total_students: int
    partial: bool
    summary: str
