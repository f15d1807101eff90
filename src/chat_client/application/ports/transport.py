from __future__ import annotations

from typing import Any, Callable, Protocol

Disposer = Callable[[], None]


class Transport(Protocol):
    """Persistent bidirectional event channel to the backend.

    Besides server events, adapters emit ``"disconnect"`` with a reason string
    when an established connection is lost.
    """

    @property
    def connected(self) -> bool: ...

    @property
    def sid(self) -> str | None: ...

    async def connect(self) -> None:
        """Establish the connection or raise TransportError."""
        ...

    async def disconnect(self) -> None: ...

    async def emit(self, event: str, data: dict[str, Any]) -> None: ...

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer: ...
