"""Registry of UI WebSocket connections attached to the local bridge."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

from chat_client.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class UiSocketManager:
    """Tracks UI sockets and pushes client events to all of them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    @property
    def count(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._connections.add(ws)
        logger.debug("UI socket connected (total=%d)", len(self._connections))

    def disconnect(self, ws: WebSocket) -> None:
        self._connections.discard(ws)
        logger.debug("UI socket disconnected (total=%d)", len(self._connections))

    async def broadcast(self, event_type: str, data: dict[str, Any]) -> None:
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[WebSocket] = []
        for ws in list(self._connections):
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
