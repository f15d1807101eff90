"""Lifecycle of the single persistent connection to the chat backend."""
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable

from chat_client.application.dto import events
from chat_client.application.dto.wire import JoinHandshake
from chat_client.application.events import Disposer, EventEmitter, Subscriptions
from chat_client.application.exceptions import NotConnectedError, TransportError
from chat_client.application.ports.clock import Scheduler, TimerHandle
from chat_client.application.ports.transport import Transport
from chat_client.domain.value_objects.enums import ConnectionState

logger = logging.getLogger(__name__)

Credentials = tuple[int, str, str]


class ConnectionManager:
    """Owns one transport connection per session.

    State machine::

        disconnected -> connecting -> joined -> reconnecting -> failed

    Reconnection uses a fixed delay and a bounded number of attempts. Once the
    budget is exhausted the manager stays ``failed`` until ``retry()``.
    Results never come back from the calling method; they are emitted as
    ``connected``, ``disconnected``, ``reconnecting``, ``reconnect_failed``,
    ``error`` and ``state_changed`` events.
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        *,
        max_attempts: int = 5,
        reconnect_delay: float = 1.0,
        force_cooldown: float = 1.0,
        ack_timeout: float = 10.0,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler
        self._max_attempts = max_attempts
        self._reconnect_delay = reconnect_delay
        self._force_cooldown = force_cooldown
        self._ack_timeout = ack_timeout

        self._events = EventEmitter()
        self._subs = Subscriptions()
        self._state = ConnectionState.DISCONNECTED
        self._credentials: Credentials | None = None
        self._attempt = 0
        self._link_up = False
        self._timer: TimerHandle | None = None
        self._ack_timer: TimerHandle | None = None

        self._subs.add(transport.on("disconnect", self._on_transport_disconnect))
        self._subs.add(transport.on(events.WIRE_JOINED, self._on_joined))
        self._subs.add(transport.on(events.WIRE_ERROR, self._on_server_error))
        for name in events.SERVER_EVENTS:
            self._subs.add(transport.on(name, partial(self._events.emit, name)))

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_joined(self) -> bool:
        return self._state == ConnectionState.JOINED

    @property
    def attempt(self) -> int:
        return self._attempt

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._events.on(event, handler)

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "is_connected": self.is_joined,
            "socket_connected": self._transport.connected,
            "reconnect_attempts": self._attempt,
            "socket_id": self._transport.sid,
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def connect(self, user_id: int | None, role: str | None, auth_token: str | None) -> ConnectionManager | None:
        if user_id in (None, "") or not role or not auth_token:
            logger.error("Missing required parameters for connection")
            self._events.emit(events.ERROR, "Missing required parameters for connection")
            return None

        if self._state == ConnectionState.FAILED:
            logger.warning("Connection failed permanently, manual retry required")
            return None

        self._credentials = (user_id, role, auth_token)
        if self._state != ConnectionState.DISCONNECTED:
            return self

        self._cancel_timer()
        self._attempt = 0
        self._set_state(ConnectionState.CONNECTING)
        self._scheduler.spawn(self._establish(), name="chat-connect")
        return self

    def disconnect(self, reason: str = "io client disconnect") -> None:
        self._cancel_timer()
        self._cancel_ack_timer()
        was_joined = self._state == ConnectionState.JOINED
        self._link_up = False
        self._attempt = 0
        self._set_state(ConnectionState.DISCONNECTED)
        self._scheduler.spawn(self._safe_transport_disconnect(), name="chat-disconnect")
        if was_joined:
            self._events.emit(events.DISCONNECTED, reason)

    def force_reconnect(self) -> None:
        if self._credentials is None:
            logger.warning("force_reconnect called before connect")
            return
        logger.info("Force reconnecting socket")
        credentials = self._credentials
        if self._state == ConnectionState.FAILED:
            self._set_state(ConnectionState.DISCONNECTED)
        self.disconnect(reason="forced reconnect")
        self._timer = self._scheduler.call_later(
            self._force_cooldown, lambda: self.connect(*credentials),
        )

    def retry(self) -> bool:
        """Manual retry: the only way out of ``failed``."""
        if self._credentials is None:
            return False
        if self._state == ConnectionState.FAILED:
            self._set_state(ConnectionState.DISCONNECTED)
        if self._state != ConnectionState.DISCONNECTED:
            return False
        return self.connect(*self._credentials) is not None

    def emit(self, event: str, data: dict[str, Any]) -> bool:
        """Fire-and-forget emit; dropped unless joined."""
        if not self.is_joined:
            logger.debug("Dropping %s: not joined", event)
            return False
        self._scheduler.spawn(self._safe_emit(event, data), name=f"chat-emit-{event}")
        return True

    async def transmit(self, event: str, data: dict[str, Any]) -> None:
        """Emit and let transport failures propagate to the caller."""
        if not self.is_joined:
            raise NotConnectedError("Not connected")
        await self._transport.emit(event, data)

    async def close(self) -> None:
        self._cancel_timer()
        self._cancel_ack_timer()
        self._subs.dispose_all()
        self._link_up = False
        self._set_state(ConnectionState.DISCONNECTED)
        await self._safe_transport_disconnect()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _establish(self) -> None:
        try:
            await self._transport.connect()
        except TransportError as exc:
            logger.warning("Socket connection error: %s", exc.detail)
            self._events.emit(events.ERROR, exc.detail)
            self._on_link_lost(f"connect error: {exc.detail}")
            return

        if self._state not in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING):
            # disconnect() raced the transport establishment
            await self._safe_transport_disconnect()
            return

        if self._credentials is None:
            logger.error("Socket connected without credentials, dropping link")
            self._set_state(ConnectionState.DISCONNECTED)
            await self._safe_transport_disconnect()
            return

        self._link_up = True
        logger.info("Socket connected: %s", self._transport.sid)
        user_id, role, token = self._credentials
        handshake = JoinHandshake(user_id=user_id, user_type=role, token=token)
        self._cancel_ack_timer()
        self._ack_timer = self._scheduler.call_later(self._ack_timeout, self._on_ack_timeout)
        try:
            await self._transport.emit(events.WIRE_JOIN, handshake.to_wire())
        except TransportError as exc:
            self._events.emit(events.ERROR, exc.detail)
            self._link_up = False
            await self._safe_transport_disconnect()
            self._on_link_lost("handshake emit failed")

    def _on_joined(self, data: Any = None) -> None:
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING):
            logger.debug("Ignoring join acknowledgement in state %s", self._state)
            return
        self._cancel_ack_timer()
        if self._state == ConnectionState.RECONNECTING:
            logger.info("Socket reconnected after %d attempts", self._attempt)
        self._attempt = 0
        self._set_state(ConnectionState.JOINED)
        self._events.emit(events.CONNECTED)

    def _on_server_error(self, data: Any = None) -> None:
        detail = data.get("message", "") if isinstance(data, dict) else str(data or "")
        logger.error("Socket error: %s", detail)
        self._events.emit(events.ERROR, detail)

    def _on_ack_timeout(self) -> None:
        self._ack_timer = None
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING):
            return
        self._events.emit(events.ERROR, "Join was not acknowledged")
        self._link_up = False
        self._scheduler.spawn(self._safe_transport_disconnect(), name="chat-ack-timeout")
        self._on_link_lost("join acknowledgement timeout")

    def _on_transport_disconnect(self, reason: Any = None) -> None:
        if not self._link_up:
            return
        self._link_up = False
        reason = str(reason or "unknown")
        if reason == "io server disconnect":
            logger.info("Server disconnected, attempting to reconnect")
        elif reason == "transport close":
            logger.info("Transport closed, will auto-reconnect")
        else:
            logger.info("Socket disconnected: %s", reason)
        self._on_link_lost(reason)

    def _on_link_lost(self, reason: str) -> None:
        if self._state in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
            return
        self._cancel_ack_timer()
        if self._state == ConnectionState.JOINED:
            self._events.emit(events.DISCONNECTED, reason)

        self._attempt += 1
        if self._attempt > self._max_attempts:
            logger.error("Failed to reconnect after %d attempts", self._max_attempts)
            self._attempt = self._max_attempts
            self._set_state(ConnectionState.FAILED)
            self._events.emit(events.RECONNECT_FAILED)
            return

        self._set_state(ConnectionState.RECONNECTING)
        logger.info("Reconnection attempt %d/%d", self._attempt, self._max_attempts)
        self._events.emit(events.RECONNECTING, self._attempt)
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._reconnect_delay, self._reconnect_now)

    def _reconnect_now(self) -> Any:
        self._timer = None
        if self._state != ConnectionState.RECONNECTING:
            return None
        return self._establish()

    async def _safe_emit(self, event: str, data: dict[str, Any]) -> None:
        try:
            await self._transport.emit(event, data)
        except TransportError as exc:
            logger.warning("Emit %s failed: %s", event, exc.detail)
            self._events.emit(events.ERROR, exc.detail)

    async def _safe_transport_disconnect(self) -> None:
        try:
            await self._transport.disconnect()
        except TransportError:
            logger.debug("Transport disconnect failed", exc_info=True)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.debug("Connection state %s -> %s", self._state, state)
        self._state = state
        self._events.emit(events.STATE_CHANGED, state)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_ack_timer(self) -> None:
        if self._ack_timer is not None:
            self._ack_timer.cancel()
            self._ack_timer = None
