"""Device signals pushed in by the UI process through the bridge."""
from __future__ import annotations

import logging
from typing import Callable

from chat_client.application.events import Disposer, EventEmitter

logger = logging.getLogger(__name__)


class DeviceNetworkSignal:
    """Implements application.ports.network.NetworkSignal.

    Starts online, like the UI does before the first reachability report.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._events = EventEmitter()

    @property
    def online(self) -> bool:
        return self._online

    def subscribe(self, callback: Callable[[bool], None]) -> Disposer:
        return self._events.on("change", callback)

    async def fetch(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        logger.info("Device network is now %s", "online" if online else "offline")
        self._online = online
        self._events.emit("change", online)


class AppStateSignal:
    """Implements application.ports.network.AppLifecycle."""

    def __init__(self) -> None:
        self._state = "active"
        self._events = EventEmitter()

    @property
    def state(self) -> str:
        return self._state

    def subscribe(self, callback: Callable[[str], None]) -> Disposer:
        return self._events.on("change", callback)

    def set_state(self, state: str) -> None:
        if state == self._state:
            return
        self._state = state
        self._events.emit("change", state)
