from __future__ import annotations

from typing import Callable, Protocol

Disposer = Callable[[], None]


class NetworkSignal(Protocol):
    """Device-level reachability, pushed to subscribers on every change."""

    def subscribe(self, callback: Callable[[bool], None]) -> Disposer: ...

    async def fetch(self) -> bool: ...


class AppLifecycle(Protocol):
    """Foreground/background transitions (``"active"``, ``"background"``)."""

    def subscribe(self, callback: Callable[[str], None]) -> Disposer: ...


class HealthProbe(Protocol):
    async def probe(self) -> bool:
        """True iff the liveness endpoint answered HTTP 200 within the timeout."""
        ...
