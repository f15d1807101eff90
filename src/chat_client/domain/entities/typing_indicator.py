from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TypingIndicator:
    room_id: int
    user_id: int
    is_typing: bool
    role: str | None = None
