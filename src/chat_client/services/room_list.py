"""Cached room list with the client-local pin overlay."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Callable

from chat_client.application.dto import events
from chat_client.application.dto.identity import Identity
from chat_client.application.events import Disposer, EventEmitter
from chat_client.application.exceptions import StorageError
from chat_client.application.ports.chat_api import ChatApi
from chat_client.application.ports.storage import KeyValueStore
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room
from chat_client.domain.value_objects.enums import MessageKind

logger = logging.getLogger(__name__)


def sort_rooms(rooms: list[Room]) -> list[Room]:
    """Pinned first, then most recent activity; rooms without messages last."""
    return sorted(
        rooms,
        key=lambda r: (
            not r.pinned,
            r.last_message_at is None,
            -r.last_message_at.timestamp() if r.last_message_at else 0.0,
        ),
    )


class RoomList:
    def __init__(
        self,
        api: ChatApi,
        store: KeyValueStore,
        *,
        pins_key: str = "chat:pinned_rooms",
    ) -> None:
        self._api = api
        self._store = store
        self._pins_key = pins_key
        self._rooms: dict[int, Room] = {}
        self._pinned: set[int] = set()
        self._events = EventEmitter()

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._events.on(event, handler)

    @property
    def pinned(self) -> frozenset[int]:
        return frozenset(self._pinned)

    async def load_pins(self) -> None:
        """Read the persisted pin set; must run before the first sort."""
        try:
            raw = await self._store.get(self._pins_key)
        except StorageError as exc:
            logger.warning("Pinned rooms unavailable, starting unpinned: %s", exc.detail)
            self._pinned = set()
            return
        if not raw:
            self._pinned = set()
            return
        try:
            self._pinned = {int(v) for v in json.loads(raw)}
        except (ValueError, TypeError):
            logger.warning("Discarding malformed pinned rooms value: %r", raw)
            self._pinned = set()

    async def refresh(self) -> list[Room]:
        rooms = await self._api.list_rooms()
        self.replace(rooms)
        return self.rooms()

    def replace(self, rooms: list[Room]) -> None:
        self._rooms = {r.id: r for r in rooms}
        self._events.emit(events.ROOMS_CHANGED)

    def get(self, room_id: int) -> Room | None:
        room = self._rooms.get(room_id)
        return self._overlay(room) if room else None

    def rooms(self) -> list[Room]:
        return sort_rooms([self._overlay(r) for r in self._rooms.values()])

    async def toggle_pin(self, room_id: int) -> bool:
        """Flip the pin; the overlay changes only after the store accepted it."""
        pinned = room_id not in self._pinned
        updated = (self._pinned | {room_id}) if pinned else (self._pinned - {room_id})
        await self._store.set(self._pins_key, json.dumps(sorted(updated)))
        self._pinned = updated
        self._events.emit(events.ROOMS_CHANGED)
        return pinned

    def touch(self, message: Message, *, me: Identity | None = None, open_room_id: int | None = None) -> bool:
        """Update preview, timestamp and unread count for an incoming message.

        Student and faculty ids are separate sequences, so authorship is
        decided by id and role together.
        """
        room = self._rooms.get(message.room_id)
        if room is None:
            return False
        incoming = me is None or (message.sender_id, message.sender_role) != (me.user_id, me.role)
        unread = room.unread_count
        if incoming and message.room_id != open_room_id:
            unread += 1
        preview = "Photo" if message.kind == MessageKind.IMAGE else message.body
        self._rooms[room.id] = replace(
            room,
            last_message_at=message.created_at,
            last_message_preview=preview,
            unread_count=unread,
        )
        self._events.emit(events.ROOMS_CHANGED)
        return True

    def mark_read(self, room_id: int) -> None:
        room = self._rooms.get(room_id)
        if room is not None and room.unread_count:
            self._rooms[room_id] = replace(room, unread_count=0)
            self._events.emit(events.ROOMS_CHANGED)

    def _overlay(self, room: Room) -> Room:
        pinned = room.id in self._pinned
        return room if room.pinned == pinned else replace(room, pinned=pinned)
