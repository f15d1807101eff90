"""Names of events emitted by the core components."""
from __future__ import annotations

from typing import Final

# ConnectionManager
CONNECTED: Final = "connected"
DISCONNECTED: Final = "disconnected"
RECONNECTING: Final = "reconnecting"
RECONNECT_FAILED: Final = "reconnect_failed"
ERROR: Final = "error"
STATE_CHANGED: Final = "state_changed"

# RoomSession / ChatClient
MESSAGES_CHANGED: Final = "messages.changed"
MESSAGE_RECEIVED: Final = "message.received"
MESSAGE_SENT: Final = "message.sent"
TYPING_CHANGED: Final = "typing.changed"
PRESENCE_CHANGED: Final = "presence.changed"
ROOMS_CHANGED: Final = "rooms.changed"
NOTICE: Final = "notice"

# ConnectivityMonitor
GATE_CHANGED: Final = "gate.changed"

# Wire events, server → client
WIRE_JOINED: Final = "joined"
WIRE_ERROR: Final = "error"
WIRE_NEW_MESSAGE: Final = "new_message"
WIRE_USER_TYPING: Final = "user_typing"
WIRE_USER_ONLINE: Final = "user_online"
WIRE_USER_OFFLINE: Final = "user_offline"

# Wire events, client → server
WIRE_JOIN: Final = "join"
WIRE_JOIN_CHAT: Final = "join_chat"
WIRE_SEND_MESSAGE: Final = "send_message"
WIRE_TYPING: Final = "typing"

SERVER_EVENTS: Final = (
    WIRE_NEW_MESSAGE,
    WIRE_USER_TYPING,
    WIRE_USER_ONLINE,
    WIRE_USER_OFFLINE,
)
