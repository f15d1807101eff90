"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Coroutine

import pytest

from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.dto.identity import Identity
from chat_client.application.events import Disposer, EventEmitter
from chat_client.application.exceptions import TransportError
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.room import Room
from chat_client.domain.value_objects.enums import MessageKind, SenderRole

BASE_TIME = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def student() -> Identity:
    return make_identity(SenderRole.STUDENT, user_id=7)


@pytest.fixture
def faculty() -> Identity:
    return make_identity(SenderRole.FACULTY, user_id=3)


def make_identity(role: SenderRole = SenderRole.STUDENT, *, user_id: int = 7) -> Identity:
    return Identity(user_id=user_id, role=role, token=f"token-{user_id}")


def make_message(
    *,
    message_id: int = 1,
    room_id: int = 42,
    sender_id: int = 7,
    sender_role: str = SenderRole.STUDENT,
    body: str = "Hello",
    kind: str = MessageKind.TEXT,
    pending: bool = False,
    client_msg_id: str | None = None,
    minutes: int = 0,
) -> Message:
    return Message(
        id=message_id,
        room_id=room_id,
        sender_id=sender_id,
        sender_role=str(sender_role),
        body=body,
        kind=str(kind),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        pending=pending,
        client_msg_id=client_msg_id,
    )


def make_room(
    room_id: int,
    *,
    name: str | None = None,
    minutes: int | None = 0,
    unread: int = 0,
) -> Room:
    return Room(
        id=room_id,
        participant_name=name or f"Participant {room_id}",
        last_message_at=BASE_TIME + timedelta(minutes=minutes) if minutes is not None else None,
        last_message_preview="hi" if minutes is not None else None,
        unread_count=unread,
    )


class EventLog:
    """Records events emitted by any component exposing ``on``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def watch(self, source: Any, *names: str) -> EventLog:
        for name in names:
            source.on(name, partial(self._record, name))
        return self

    def _record(self, name: str, *args: Any) -> None:
        self.events.append((name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.events if n == name]


@dataclass
class _FakeTimer:
    when: float
    seq: int
    callback: Callable[[], Any]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual-time scheduler: timers fire only on ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.tasks: list[asyncio.Task[Any]] = []
        self._timers: list[_FakeTimer] = []
        self._seq = 0

    @property
    def pending_timers(self) -> list[_FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _FakeTimer:
        self._seq += 1
        timer = _FakeTimer(when=self.now + delay, seq=self._seq, callback=callback)
        self._timers.append(timer)
        return timer

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self.tasks.append(task)
        return task

    async def drain(self) -> None:
        """Run spawned work until nothing is left in flight."""
        while True:
            pending = [t for t in self.tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await self.drain()
        while True:
            due = sorted(
                (t for t in self._timers if not t.cancelled and t.when <= target),
                key=lambda t: (t.when, t.seq),
            )
            if not due:
                break
            timer = due[0]
            self._timers.remove(timer)
            self.now = timer.when
            result = timer.callback()
            if inspect.iscoroutine(result):
                self.spawn(result)
            await self.drain()
        self.now = target
        self._timers = self.pending_timers


class FakeTransport:
    """In-memory socket: records emits and lets tests play the server."""

    def __init__(self, *, auto_join: bool = True) -> None:
        self.auto_join = auto_join
        self.connected = False
        self.sid: str | None = None
        self.connect_calls = 0
        self.fail_connects = 0  # -1 fails every connect
        self.fail_emits = False
        self.emitted: list[tuple[str, dict[str, Any]]] = []
        self._listeners = EventEmitter()

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connects:
            if self.fail_connects > 0:
                self.fail_connects -= 1
            raise TransportError("connection refused")
        self.connected = True
        self.sid = f"sid-{self.connect_calls}"

    async def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self.sid = None
        self._listeners.emit("disconnect", "io client disconnect")

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        if self.fail_emits:
            raise TransportError(f"cannot emit {event}")
        self.emitted.append((event, data))
        if event == "join" and self.auto_join:
            self._listeners.emit("joined", {"userId": data["userId"]})

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._listeners.on(event, handler)

    def listener_count(self) -> int:
        return self._listeners.listener_count()

    def server_emit(self, event: str, data: Any = None) -> None:
        self._listeners.emit(event, data)

    def drop(self, reason: str = "transport close") -> None:
        self.connected = False
        self.sid = None
        self._listeners.emit("disconnect", reason)

    def emitted_events(self, name: str) -> list[dict[str, Any]]:
        return [data for event, data in self.emitted if event == name]


@dataclass
class FakeChatApi:
    rooms: list[Room] = field(default_factory=list)
    history: dict[int, list[Message]] = field(default_factory=dict)
    broadcast_result: BroadcastResult = field(default_factory=lambda: BroadcastResult(12, 12))
    fail_with: Exception | None = None
    hold: asyncio.Event | None = None
    list_rooms_calls: int = 0
    edits: list[tuple[int, str]] = field(default_factory=list)
    deletes: list[int] = field(default_factory=list)
    broadcasts: list[tuple[str, str]] = field(default_factory=list)

    async def list_rooms(self) -> list[Room]:
        self.list_rooms_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.rooms)

    async def list_messages(self, room_id: int) -> list[Message]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.history.get(room_id, []))

    async def edit_message(self, message_id: int, body: str) -> None:
        self.edits.append((message_id, body))

    async def delete_message(self, message_id: int) -> None:
        self.deletes.append(message_id)

    async def broadcast(self, body: str, kind: str) -> BroadcastResult:
        self.broadcasts.append((body, kind))
        if self.hold is not None:
            await self.hold.wait()
        return self.broadcast_result


@dataclass
class FakeHealthProbe:
    reachable: bool = True
    calls: int = 0
    hold: asyncio.Event | None = None

    async def probe(self) -> bool:
        self.calls += 1
        if self.hold is not None:
            await self.hold.wait()
        return self.reachable


@dataclass
class FakeUploader:
    url: str = "https://files.example.edu/uploads/photo.jpg"
    error: Exception | None = None
    uploaded: list[str] = field(default_factory=list)

    async def upload(self, local_ref: str) -> str:
        self.uploaded.append(local_ref)
        if self.error is not None:
            raise self.error
        return self.url


@dataclass
class FakeKeyValueStore:
    data: dict[str, str] = field(default_factory=dict)
    fail_with: Exception | None = None

    async def get(self, key: str) -> str | None:
        if self.fail_with is not None:
            raise self.fail_with
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.data[key] = value


@dataclass
class StaticIdentityProvider:
    identity: Identity

    async def current(self) -> Identity:
        return self.identity
