"""Socket.IO and REST payloads exchanged with the campus backend."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room
from chat_client.domain.entities.typing_indicator import TypingIndicator


class _Outbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class JoinHandshake(_Outbound):
    user_id: int = Field(alias="userId")
    user_type: str = Field(alias="userType")
    token: str


class JoinChat(_Outbound):
    room_id: int = Field(alias="roomId")
    user_id: int = Field(alias="userId")
    user_type: str = Field(alias="userType")


class SendMessage(_Outbound):
    room_id: int = Field(alias="roomId")
    sender_id: int = Field(alias="senderId")
    sender_type: str = Field(alias="senderType")
    message: str
    message_type: str = Field(default="text", alias="messageType")
    client_msg_id: str | None = Field(default=None, alias="clientMsgId")


class Typing(_Outbound):
    room_id: int = Field(alias="roomId")
    user_id: int = Field(alias="userId")
    user_type: str = Field(alias="userType")
    is_typing: bool = Field(alias="isTyping")


class NewMessageEvent(BaseModel):
    """``new_message`` broadcast and REST history rows share this shape."""

    model_config = ConfigDict(extra="ignore")

    id: int
    room_id: int = Field(validation_alias=AliasChoices("room_id", "roomId"))
    sender_id: int
    sender_type: str
    sender_name: str | None = None
    message: str
    message_type: str = "text"
    is_read: bool = False
    edited: bool = False
    created_at: datetime | None = None
    client_msg_id: str | None = Field(
        default=None, validation_alias=AliasChoices("client_msg_id", "clientMsgId"),
    )

    def to_entity(self, *, received_at: datetime | None = None) -> Message:
        created = self.created_at or received_at or datetime.now(timezone.utc)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return Message(
            id=self.id,
            room_id=self.room_id,
            sender_id=self.sender_id,
            sender_role=self.sender_type,
            body=self.message,
            kind=self.message_type,
            created_at=created,
            pending=False,
            edited=self.edited,
            read_at=created if self.is_read else None,
            sender_name=self.sender_name,
            client_msg_id=self.client_msg_id,
        )


class UserTypingEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    room_id: int = Field(validation_alias=AliasChoices("roomId", "room_id"))
    user_id: int = Field(validation_alias=AliasChoices("userId", "user_id"))
    user_type: str | None = Field(default=None, validation_alias=AliasChoices("userType", "user_type"))
    is_typing: bool = Field(validation_alias=AliasChoices("isTyping", "is_typing"))

    def to_entity(self) -> TypingIndicator:
        return TypingIndicator(
            room_id=self.room_id,
            user_id=self.user_id,
            is_typing=self.is_typing,
            role=self.user_type,
        )


class PresenceEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: int = Field(validation_alias=AliasChoices("userId", "user_id"))
    user_type: str | None = Field(default=None, validation_alias=AliasChoices("userType", "user_type"))


class RoomRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    room_id: int
    student_name: str | None = None
    faculty_name: str | None = None
    last_message: str | None = None
    last_message_time: datetime | None = None
    unread_count: int = 0

    def to_entity(self) -> Room:
        last_at = self.last_message_time
        if last_at is not None and last_at.tzinfo is None:
            last_at = last_at.replace(tzinfo=timezone.utc)
        return Room(
            id=self.room_id,
            participant_name=self.student_name or self.faculty_name or "Unknown",
            last_message_at=last_at,
            last_message_preview=self.last_message,
            unread_count=self.unread_count,
        )


class BroadcastRequest(_Outbound):
    message: str
    message_type: str = Field(default="text", alias="messageType")


class BroadcastResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success_count: int = Field(alias="successCount")
    total_students: int = Field(alias="totalStudents")
