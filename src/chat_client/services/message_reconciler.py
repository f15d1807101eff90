"""Merge optimistic local messages with server-confirmed echoes."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta

from chat_client.application.ports.clock import monotonic_ms
from chat_client.domain.entities.message import Message

logger = logging.getLogger(__name__)

# Tolerated lag of the server clock behind the local one when matching echoes.
ECHO_CLOCK_SKEW = timedelta(seconds=5)


class LocalIdGenerator:
    """Millisecond timestamps, strictly increasing within a session."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        candidate = monotonic_ms()
        self._last = max(candidate, self._last + 1)
        return self._last


class MessageReconciler:
    """Per-room message lists with pending-entry reconciliation.

    A pending entry is resolved at most once: either replaced by its
    authoritative echo or removed on rollback. Matching prefers the
    ``client_msg_id`` correlation id and falls back to the first pending
    entry (FIFO) with the same sender, role and body.
    """

    def __init__(self) -> None:
        self._rooms: dict[int, list[Message]] = {}

    def messages(self, room_id: int) -> list[Message]:
        return list(self._rooms.get(room_id, ()))

    def pending(self, room_id: int) -> list[Message]:
        return [m for m in self._rooms.get(room_id, ()) if m.pending]

    def add_pending(self, message: Message) -> Message:
        if not message.pending:
            message = replace(message, pending=True)
        self._rooms.setdefault(message.room_id, []).append(message)
        return message

    def apply_authoritative(self, message: Message) -> Message:
        """Insert a server-confirmed message, replacing its pending twin if any."""
        if message.pending:
            message = replace(message, pending=False)
        entries = self._rooms.setdefault(message.room_id, [])

        for i, existing in enumerate(entries):
            if not existing.pending and existing.id == message.id:
                entries[i] = message
                return message

        idx = self._find_pending(entries, message)
        if idx is not None:
            logger.debug(
                "Resolved pending %s with server message %s in room %s",
                entries[idx].id, message.id, message.room_id,
            )
            entries[idx] = message
            return message

        entries.append(message)
        return message

    def update_pending_body(self, room_id: int, local_id: int, body: str) -> Message | None:
        """Swap the body of a still-pending entry (upload-backed sends)."""
        entries = self._rooms.get(room_id, [])
        for i, m in enumerate(entries):
            if m.id == local_id and m.pending:
                entries[i] = replace(m, body=body)
                return entries[i]
        return None

    def rollback(self, room_id: int, local_id: int) -> bool:
        entries = self._rooms.get(room_id, [])
        for i, m in enumerate(entries):
            if m.id == local_id and m.pending:
                del entries[i]
                return True
        return False

    def load_history(self, room_id: int, history: list[Message]) -> None:
        """Replace confirmed messages with server history, keeping unresolved sends."""
        still_pending = self.pending(room_id)
        entries = [replace(m, pending=False) if m.pending else m for m in history]
        self._rooms[room_id] = entries
        claimed: set[int] = set()
        for m in still_pending:
            # History may already hold the echo of a send still pending locally.
            echo = next(
                (
                    i for i, existing in enumerate(entries)
                    if i not in claimed and _same_send(m, existing)
                ),
                None,
            )
            if echo is None:
                entries.append(m)
            else:
                claimed.add(echo)

    def mark_edited(self, message_id: int, body: str) -> Message | None:
        for entries in self._rooms.values():
            for i, m in enumerate(entries):
                if m.id == message_id and not m.pending:
                    entries[i] = replace(m, body=body, edited=True)
                    return entries[i]
        return None

    def remove(self, message_id: int) -> Message | None:
        for entries in self._rooms.values():
            for i, m in enumerate(entries):
                if m.id == message_id and not m.pending:
                    return entries.pop(i)
        return None

    def room_of(self, message_id: int) -> int | None:
        for room_id, entries in self._rooms.items():
            if any(m.id == message_id for m in entries):
                return room_id
        return None

    def clear(self, room_id: int | None = None) -> None:
        if room_id is None:
            self._rooms.clear()
        else:
            self._rooms.pop(room_id, None)

    @staticmethod
    def _find_pending(entries: list[Message], echo: Message) -> int | None:
        if echo.client_msg_id:
            for i, m in enumerate(entries):
                if m.pending and m.client_msg_id == echo.client_msg_id:
                    return i
        for i, m in enumerate(entries):
            if (
                m.pending
                and m.sender_id == echo.sender_id
                and m.sender_role == echo.sender_role
                and m.body == echo.body
            ):
                return i
        return None


def _same_send(pending: Message, confirmed: Message) -> bool:
    if confirmed.pending:
        return False
    if pending.client_msg_id and confirmed.client_msg_id:
        return pending.client_msg_id == confirmed.client_msg_id
    # An older row with the same text is an earlier message, not this echo.
    if confirmed.created_at < pending.created_at - ECHO_CLOCK_SKEW:
        return False
    return (
        pending.sender_id == confirmed.sender_id
        and pending.sender_role == confirmed.sender_role
        and pending.body == confirmed.body
    )
