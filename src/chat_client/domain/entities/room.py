from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Room:
    id: int
    participant_name: str
    last_message_at: datetime | None = None
    last_message_preview: str | None = None
    unread_count: int = 0
    pinned: bool = False
