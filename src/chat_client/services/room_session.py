"""Conversation-scoped messaging on top of the shared connection."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from chat_client.application.dto import events
from chat_client.application.dto.wire import (
    JoinChat,
    NewMessageEvent,
    PresenceEvent,
    SendMessage,
    Typing,
    UserTypingEvent,
)
from chat_client.application.events import Disposer, EventEmitter, Subscriptions
from chat_client.application.exceptions import (
    NotConnectedError,
    TransportError,
    UploadError,
    ValidationError,
)
from chat_client.application.ports.clock import Clock, Scheduler, SystemClock, TimerHandle
from chat_client.application.ports.upload import Uploader
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.typing_indicator import TypingIndicator
from chat_client.domain.value_objects.enums import MessageKind
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.message_reconciler import LocalIdGenerator, MessageReconciler

logger = logging.getLogger(__name__)

NOT_CONNECTED_NOTICE = "Not connected. Your message will not be delivered until the connection is restored."


@dataclass(slots=True)
class _OutgoingTyping:
    user_id: int
    role: str
    timer: TimerHandle | None = None


class RoomSession:
    """Join/leave rooms, send messages and typing presence, receive both.

    Room membership does not survive a transport reconnect; every room joined
    through this session is joined again on each ``connected`` event.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        reconciler: MessageReconciler,
        scheduler: Scheduler,
        *,
        uploader: Uploader | None = None,
        clock: Clock | None = None,
        typing_idle: float = 1.0,
    ) -> None:
        self._connection = connection
        self._reconciler = reconciler
        self._scheduler = scheduler
        self._uploader = uploader
        self._clock = clock or SystemClock()
        self._typing_idle = typing_idle
        self._ids = LocalIdGenerator()

        self._events = EventEmitter()
        self._subs = Subscriptions()
        self._rooms: dict[int, tuple[int, str]] = {}
        self._outgoing_typing: dict[int, _OutgoingTyping] = {}
        self._indicators: dict[int, dict[int, TypingIndicator]] = {}
        self._presence: dict[int, bool] = {}

        self._subs.add(connection.on(events.CONNECTED, self._on_connected))
        self._subs.add(connection.on(events.DISCONNECTED, self._on_disconnected))
        self._subs.add(connection.on(events.WIRE_NEW_MESSAGE, self._on_new_message))
        self._subs.add(connection.on(events.WIRE_USER_TYPING, self._on_user_typing))
        self._subs.add(connection.on(events.WIRE_USER_ONLINE, self._on_presence(True)))
        self._subs.add(connection.on(events.WIRE_USER_OFFLINE, self._on_presence(False)))

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._events.on(event, handler)

    @property
    def joined_rooms(self) -> list[int]:
        return list(self._rooms)

    def messages(self, room_id: int) -> list[Message]:
        return self._reconciler.messages(room_id)

    def typing_users(self, room_id: int) -> list[TypingIndicator]:
        return list(self._indicators.get(room_id, {}).values())

    def is_online(self, user_id: int) -> bool:
        return self._presence.get(user_id, False)

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def join(self, room_id: int, user_id: int, role: str) -> bool:
        if not self._connection.is_joined:
            logger.debug("join(%s) ignored: connection not joined", room_id)
            return False
        self._rooms[room_id] = (user_id, str(role))
        self._emit_join(room_id, user_id, str(role))
        return True

    def leave(self, room_id: int) -> None:
        self._rooms.pop(room_id, None)
        self._stop_typing(room_id)
        if self._indicators.pop(room_id, None):
            self._events.emit(events.TYPING_CHANGED, room_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def send(
        self,
        room_id: int,
        sender_id: int,
        role: str,
        body: str,
        kind: str = MessageKind.TEXT,
    ) -> Message:
        """Render a pending message immediately and transmit it.

        Confirmation arrives later as a ``new_message`` echo. When not joined
        nothing is transmitted and the pending entry stays unresolved.
        """
        body = (body or "").strip()
        if not body:
            raise ValidationError("Message body is required")

        pending = self._add_pending(room_id, sender_id, role, body, kind)
        if not self._connection.is_joined:
            logger.warning("send to room %s while not joined", room_id)
            self._events.emit(events.NOTICE, NOT_CONNECTED_NOTICE)
            return pending

        self._scheduler.spawn(self._transmit(pending), name=f"chat-send-{pending.id}")
        return pending

    def send_image(self, room_id: int, sender_id: int, role: str, local_ref: str) -> Message:
        """Pending image message resolved through the upload collaborator."""
        if not local_ref:
            raise ValidationError("Image reference is required")
        pending = self._add_pending(room_id, sender_id, role, local_ref, MessageKind.IMAGE)
        self._scheduler.spawn(self._upload_and_transmit(pending), name=f"chat-upload-{pending.id}")
        return pending

    # ------------------------------------------------------------------
    # Typing
    # ------------------------------------------------------------------

    def send_typing(self, room_id: int, user_id: int, role: str, is_typing: bool = True) -> None:
        """Debounced typing presence.

        The first keystroke after idle emits ``isTyping: true``; the trailing
        ``isTyping: false`` goes out once no keystroke arrived for the idle
        period. ``is_typing=False`` stops immediately.
        """
        if not is_typing:
            self._stop_typing(room_id)
            return
        if not self._connection.is_joined:
            return

        state = self._outgoing_typing.get(room_id)
        if state is None:
            state = _OutgoingTyping(user_id=user_id, role=str(role))
            self._outgoing_typing[room_id] = state
            self._emit_typing(room_id, state.user_id, state.role, True)
        elif state.timer is not None:
            state.timer.cancel()
        state.timer = self._scheduler.call_later(
            self._typing_idle, lambda: self._stop_typing(room_id),
        )

    def close(self) -> None:
        """Tear down: cancel typing timers, release every subscription."""
        for state in self._outgoing_typing.values():
            if state.timer is not None:
                state.timer.cancel()
        self._outgoing_typing.clear()
        self._indicators.clear()
        self._rooms.clear()
        self._subs.dispose_all()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_pending(self, room_id: int, sender_id: int, role: str, body: str, kind: str) -> Message:
        pending = Message(
            id=self._ids.next(),
            room_id=room_id,
            sender_id=sender_id,
            sender_role=str(role),
            body=body,
            kind=str(kind),
            created_at=self._clock.now(),
            pending=True,
            client_msg_id=uuid.uuid4().hex,
        )
        self._reconciler.add_pending(pending)
        self._events.emit(events.MESSAGES_CHANGED, room_id)
        return pending

    async def _transmit(self, message: Message) -> None:
        payload = SendMessage(
            room_id=message.room_id,
            sender_id=message.sender_id,
            sender_type=message.sender_role,
            message=message.body,
            message_type=message.kind,
            client_msg_id=message.client_msg_id,
        )
        try:
            await self._connection.transmit(events.WIRE_SEND_MESSAGE, payload.to_wire())
        except (TransportError, NotConnectedError) as exc:
            logger.warning("Sending message to room %s failed: %s", message.room_id, exc.detail)
            self._rollback(message, "Failed to send message")
            return
        self._events.emit(events.MESSAGE_SENT, message.room_id)

    async def _upload_and_transmit(self, message: Message) -> None:
        if self._uploader is None:
            self._rollback(message, "Image upload is not available")
            return
        try:
            url = await self._uploader.upload(message.body)
        except UploadError as exc:
            logger.warning("Upload for room %s failed: %s", message.room_id, exc.detail)
            self._rollback(message, "Failed to send image")
            return

        updated = self._reconciler.update_pending_body(message.room_id, message.id, url)
        if updated is None:
            return
        self._events.emit(events.MESSAGES_CHANGED, message.room_id)
        if not self._connection.is_joined:
            self._events.emit(events.NOTICE, NOT_CONNECTED_NOTICE)
            return
        await self._transmit(updated)

    def _rollback(self, message: Message, notice: str) -> None:
        if self._reconciler.rollback(message.room_id, message.id):
            self._events.emit(events.MESSAGES_CHANGED, message.room_id)
        self._events.emit(events.NOTICE, notice)

    def _emit_join(self, room_id: int, user_id: int, role: str) -> None:
        payload = JoinChat(room_id=room_id, user_id=user_id, user_type=role)
        self._connection.emit(events.WIRE_JOIN_CHAT, payload.to_wire())

    def _emit_typing(self, room_id: int, user_id: int, role: str, is_typing: bool) -> None:
        payload = Typing(room_id=room_id, user_id=user_id, user_type=role, is_typing=is_typing)
        self._connection.emit(events.WIRE_TYPING, payload.to_wire())

    def _stop_typing(self, room_id: int) -> None:
        state = self._outgoing_typing.pop(room_id, None)
        if state is None:
            return
        if state.timer is not None:
            state.timer.cancel()
        self._emit_typing(room_id, state.user_id, state.role, False)

    def _on_connected(self) -> None:
        for room_id, (user_id, role) in self._rooms.items():
            logger.debug("Rejoining room %s after reconnect", room_id)
            self._emit_join(room_id, user_id, role)

    def _on_disconnected(self, reason: str = "") -> None:
        for state in self._outgoing_typing.values():
            if state.timer is not None:
                state.timer.cancel()
        self._outgoing_typing.clear()
        stale = list(self._indicators)
        self._indicators.clear()
        for room_id in stale:
            self._events.emit(events.TYPING_CHANGED, room_id)

    def _on_new_message(self, data: Any) -> None:
        try:
            event = NewMessageEvent.model_validate(data)
        except PydanticValidationError:
            logger.warning("Malformed new_message payload: %r", data)
            return
        message = self._reconciler.apply_authoritative(
            event.to_entity(received_at=self._clock.now()),
        )
        self._events.emit(events.MESSAGES_CHANGED, message.room_id)
        self._events.emit(events.MESSAGE_RECEIVED, message)

    def _on_user_typing(self, data: Any) -> None:
        try:
            indicator = UserTypingEvent.model_validate(data).to_entity()
        except PydanticValidationError:
            logger.warning("Malformed user_typing payload: %r", data)
            return
        me = self._rooms.get(indicator.room_id)
        if me is not None and me[0] == indicator.user_id:
            return
        room = self._indicators.setdefault(indicator.room_id, {})
        if indicator.is_typing:
            room[indicator.user_id] = indicator
        else:
            room.pop(indicator.user_id, None)
            if not room:
                del self._indicators[indicator.room_id]
        self._events.emit(events.TYPING_CHANGED, indicator.room_id)

    def _on_presence(self, online: bool) -> Callable[[Any], None]:
        def handler(data: Any) -> None:
            try:
                event = PresenceEvent.model_validate(data)
            except PydanticValidationError:
                logger.warning("Malformed presence payload: %r", data)
                return
            self._presence[event.user_id] = online
            self._events.emit(events.PRESENCE_CHANGED, event.user_id, online)

        return handler
