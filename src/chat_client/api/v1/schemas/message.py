from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from chat_client.domain.value_objects.enums import MessageKind


class SendMessageRequest(BaseModel):
    body: str
    kind: MessageKind = MessageKind.TEXT


class SendImageRequest(BaseModel):
    local_ref: str


class TypingRequest(BaseModel):
    is_typing: bool = True


class EditMessageRequest(BaseModel):
    body: str


class MessageResponse(BaseModel):
    id: int
    room_id: int
    sender_id: int
    sender_role: str
    sender_name: str | None
    body: str
    kind: str
    created_at: datetime
    pending: bool
    edited: bool
    read_at: datetime | None

    model_config = {"from_attributes": True}


class TypingUserResponse(BaseModel):
    room_id: int
    user_id: int
    is_typing: bool

    model_config = {"from_attributes": True}
