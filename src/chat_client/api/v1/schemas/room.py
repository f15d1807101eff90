from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class RoomResponse(BaseModel):
    id: int
    participant_name: str
    last_message_at: datetime | None
    last_message_preview: str | None
    unread_count: int
    pinned: bool

    model_config = {"from_attributes": True}


class PinResponse(BaseModel):
    room_id: int
    pinned: bool


class JoinResponse(BaseModel):
    room_id: int
    joined: bool
