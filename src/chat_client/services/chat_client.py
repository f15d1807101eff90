"""Session-scope owner of the realtime core.

``ChatClient`` is the only object UI code talks to. It owns one
ConnectionManager and hands it by reference to the RoomSession; nothing in
the core is a module-level singleton.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from chat_client.application.dto import events
from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.dto.connectivity import GateState
from chat_client.application.dto.identity import Identity
from chat_client.application.events import Disposer, EventEmitter, Subscriptions
from chat_client.application.exceptions import (
    ApiError,
    ConnectivityError,
    NotFoundError,
    ValidationError,
)
from chat_client.application.ports.auth import IdentityProvider
from chat_client.application.ports.chat_api import ChatApi
from chat_client.application.ports.clock import Clock, Scheduler
from chat_client.application.ports.network import AppLifecycle, HealthProbe, NetworkSignal
from chat_client.application.ports.storage import KeyValueStore
from chat_client.application.ports.transport import Transport
from chat_client.application.ports.upload import Uploader
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room
from chat_client.domain.entities.typing_indicator import TypingIndicator
from chat_client.domain.value_objects.enums import ConnectionState, MessageKind
from chat_client.services.broadcast_dispatcher import BroadcastDispatcher
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.connectivity_monitor import ConnectivityMonitor
from chat_client.services.fault_reporter import ConnectivityFaultReporter
from chat_client.services.message_reconciler import MessageReconciler
from chat_client.services.room_list import RoomList
from chat_client.services.room_session import RoomSession

logger = logging.getLogger(__name__)

_FORWARDED = {
    "connection": (events.STATE_CHANGED, events.ERROR, events.RECONNECTING, events.RECONNECT_FAILED),
    "session": (events.MESSAGES_CHANGED, events.TYPING_CHANGED, events.PRESENCE_CHANGED, events.NOTICE),
    "rooms": (events.ROOMS_CHANGED,),
    "monitor": (events.GATE_CHANGED,),
}


class ChatClient:
    def __init__(
        self,
        *,
        identity_provider: IdentityProvider,
        transport: Transport,
        api: ChatApi,
        health_probe: HealthProbe,
        network: NetworkSignal,
        store: KeyValueStore,
        scheduler: Scheduler,
        reporter: ConnectivityFaultReporter | None = None,
        uploader: Uploader | None = None,
        lifecycle: AppLifecycle | None = None,
        clock: Clock | None = None,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        force_reconnect_cooldown: float = 1.0,
        join_ack_timeout: float = 10.0,
        typing_idle: float = 1.0,
        probe_interval: float = 30.0,
        probe_after_restore: float = 1.0,
        pins_key: str = "chat:pinned_rooms",
    ) -> None:
        self._identity_provider = identity_provider
        self._api = api
        self._scheduler = scheduler
        self._identity: Identity | None = None
        self._open_room: int | None = None

        self.reporter = reporter or ConnectivityFaultReporter()
        self.connection = ConnectionManager(
            transport,
            scheduler,
            max_attempts=max_reconnect_attempts,
            reconnect_delay=reconnect_delay,
            force_cooldown=force_reconnect_cooldown,
            ack_timeout=join_ack_timeout,
        )
        self.reconciler = MessageReconciler()
        self.session = RoomSession(
            self.connection,
            self.reconciler,
            scheduler,
            uploader=uploader,
            clock=clock,
            typing_idle=typing_idle,
        )
        self.room_list = RoomList(api, store, pins_key=pins_key)
        self.monitor = ConnectivityMonitor(
            network,
            health_probe,
            scheduler,
            self.reporter,
            lifecycle=lifecycle,
            probe_interval=probe_interval,
            probe_after_restore=probe_after_restore,
        )
        self.broadcaster = BroadcastDispatcher(api)

        self._events = EventEmitter()
        self._subs = Subscriptions()
        sources = {
            "connection": self.connection,
            "session": self.session,
            "rooms": self.room_list,
            "monitor": self.monitor,
        }
        for source_name, names in _FORWARDED.items():
            for name in names:
                self._subs.add(sources[source_name].on(name, self._forward(name)))
        self._subs.add(self.session.on(events.MESSAGE_RECEIVED, self._on_message_received))
        self._subs.add(self.session.on(events.MESSAGE_SENT, self._on_message_sent))

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._events.on(event, handler)

    @property
    def identity(self) -> Identity:
        if self._identity is None:
            raise ValidationError("Chat session has not been started")
        return self._identity

    @property
    def current_room(self) -> int | None:
        return self._open_room

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._identity = await self._identity_provider.current()
        logger.info("Starting chat session for %s %s", self._identity.role, self._identity.user_id)
        await self.room_list.load_pins()
        await self.monitor.start()
        self.connection.connect(self._identity.user_id, self._identity.role.value, self._identity.token)
        await self._refresh_rooms_quietly()

    async def close(self) -> None:
        self.session.close()
        self._subs.dispose_all()
        await self.monitor.stop()
        await self.connection.close()
        logger.info("Chat session closed")

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def rooms(self) -> list[Room]:
        return self.room_list.rooms()

    async def refresh_rooms(self) -> list[Room]:
        return await self.room_list.refresh()

    def join(self, room_id: int) -> bool:
        return self.session.join(room_id, self.identity.user_id, self.identity.role.value)

    def leave(self, room_id: int) -> None:
        self.session.leave(room_id)
        if self._open_room == room_id:
            self._open_room = None

    async def open_room(self, room_id: int) -> list[Message]:
        """Join a room, load its history and mark it read."""
        self._open_room = room_id
        self.join(room_id)
        history = await self._api.list_messages(room_id)
        self.reconciler.load_history(room_id, history)
        self.room_list.mark_read(room_id)
        self._events.emit(events.MESSAGES_CHANGED, room_id)
        return self.reconciler.messages(room_id)

    async def toggle_pin(self, room_id: int) -> bool:
        return await self.room_list.toggle_pin(room_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def messages(self, room_id: int) -> list[Message]:
        return self.reconciler.messages(room_id)

    def typing_users(self, room_id: int) -> list[TypingIndicator]:
        return self.session.typing_users(room_id)

    def send(self, room_id: int, body: str, kind: str = MessageKind.TEXT) -> Message:
        me = self.identity
        return self.session.send(room_id, me.user_id, me.role.value, body, kind)

    def send_image(self, room_id: int, local_ref: str) -> Message:
        me = self.identity
        return self.session.send_image(room_id, me.user_id, me.role.value, local_ref)

    def send_typing(self, room_id: int, is_typing: bool = True) -> None:
        me = self.identity
        self.session.send_typing(room_id, me.user_id, me.role.value, is_typing)

    async def edit_message(self, message_id: int, body: str) -> Message:
        body = (body or "").strip()
        if not body:
            raise ValidationError("Message content is required")
        if self.reconciler.room_of(message_id) is None:
            raise NotFoundError("Message not found")
        await self._api.edit_message(message_id, body)
        updated = self.reconciler.mark_edited(message_id, body)
        if updated is None:
            raise NotFoundError("Message not found")
        self._events.emit(events.MESSAGES_CHANGED, updated.room_id)
        return updated

    async def delete_message(self, message_id: int) -> None:
        if self.reconciler.room_of(message_id) is None:
            raise NotFoundError("Message not found")
        await self._api.delete_message(message_id)
        removed = self.reconciler.remove(message_id)
        if removed is not None:
            self._events.emit(events.MESSAGES_CHANGED, removed.room_id)

    async def broadcast(self, body: str, kind: str = MessageKind.TEXT) -> BroadcastResult:
        result = await self.broadcaster.broadcast(self.identity, body, kind)
        self._scheduler.spawn(self._refresh_rooms_quietly(), name="rooms-refresh-broadcast")
        return result

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    @property
    def gate(self) -> GateState:
        return self.monitor.gate

    def handle_back_navigation(self) -> bool:
        return self.monitor.handle_back_navigation()

    async def retry_connection(self) -> GateState:
        gate = await self.monitor.retry_connection()
        if not gate.visible and self.connection.state == ConnectionState.FAILED:
            self.connection.retry()
        return gate

    def force_reconnect(self) -> None:
        self.connection.force_reconnect()

    def connection_status(self) -> dict[str, Any]:
        return self.connection.status()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _forward(self, name: str) -> Callable[..., None]:
        def handler(*args: Any) -> None:
            self._events.emit(name, *args)

        return handler

    def _on_message_received(self, message: Message) -> None:
        known = self.room_list.touch(message, me=self._identity, open_room_id=self._open_room)
        if not known:
            self._scheduler.spawn(self._refresh_rooms_quietly(), name="rooms-refresh-new-room")

    def _on_message_sent(self, room_id: int) -> None:
        self._scheduler.spawn(self._refresh_rooms_quietly(), name="rooms-refresh-send")

    async def _refresh_rooms_quietly(self) -> None:
        try:
            await self.room_list.refresh()
        except (ConnectivityError, ApiError) as exc:
            logger.warning("Failed to load chat rooms: %s", exc.detail)
