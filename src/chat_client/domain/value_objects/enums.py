from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    JOINED = "joined"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class NetworkState(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


class ServerReachability(StrEnum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


class SenderRole(StrEnum):
    STUDENT = "student"
    FACULTY = "faculty"


class MessageKind(StrEnum):
    TEXT = "text"
    IMAGE = "image"


class FaultType(StrEnum):
    NO_INTERNET = "no_internet"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
