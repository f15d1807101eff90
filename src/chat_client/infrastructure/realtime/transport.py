"""python-socketio client adapter implementing application.ports.transport.Transport."""
from __future__ import annotations

import logging
from typing import Any, Callable

import socketio
from socketio.exceptions import SocketIOError

from chat_client.application.events import Disposer, EventEmitter
from chat_client.application.exceptions import TransportError

logger = logging.getLogger(__name__)


class SocketIOTransport:
    """Thin wrapper around ``socketio.AsyncClient``.

    Automatic reconnection is disabled here: the ConnectionManager owns the
    retry policy. Server events are re-emitted through a local registry so
    subscribers get disposers.
    """

    def __init__(
        self,
        url: str,
        *,
        socketio_path: str = "socket.io",
        connect_timeout: float = 10.0,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._socketio_path = socketio_path
        self._connect_timeout = connect_timeout
        self._listeners = EventEmitter()
        self._sio = client or socketio.AsyncClient(
            reconnection=False,
            logger=False,
            engineio_logger=False,
        )
        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)
        self._sio.on("*", self._on_any)

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    @property
    def sid(self) -> str | None:
        return self._sio.sid if self._sio.connected else None

    async def connect(self) -> None:
        try:
            await self._sio.connect(
                self._url,
                transports=["websocket", "polling"],
                socketio_path=self._socketio_path,
                wait_timeout=self._connect_timeout,
            )
        except SocketIOError as exc:
            raise TransportError(str(exc) or "Connection failed") from exc

    async def disconnect(self) -> None:
        if not self._sio.connected:
            return
        try:
            await self._sio.disconnect()
        except SocketIOError as exc:
            raise TransportError(str(exc)) from exc

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        try:
            await self._sio.emit(event, data)
        except SocketIOError as exc:
            raise TransportError(str(exc) or f"Failed to emit {event}") from exc

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._listeners.on(event, handler)

    async def _on_connect(self) -> None:
        logger.debug("Socket.IO connected: %s", self._sio.sid)

    async def _on_disconnect(self, reason: Any = None) -> None:
        logger.debug("Socket.IO disconnected: %s", reason)
        self._listeners.emit("disconnect", str(reason) if reason is not None else "transport close")

    async def _on_any(self, event: str, data: Any = None, *_rest: Any) -> None:
        self._listeners.emit(event, data)
