"""UI WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """UI → bridge."""

    type: str  # typing | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Bridge → UI."""

    type: str  # messages.changed | rooms.changed | gate.changed | notice | error | pong
    data: dict[str, Any] = {}
