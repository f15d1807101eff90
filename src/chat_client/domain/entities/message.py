from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    room_id: int
    sender_id: int
    sender_role: str
    body: str
    kind: str
    created_at: datetime
    pending: bool = False
    edited: bool = False
    read_at: datetime | None = None
    sender_name: str | None = None
    client_msg_id: str | None = None
