"""Listener registry with disposers, shared by every component that emits events."""
from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
Disposer = Callable[[], None]


class EventEmitter:
    """Synchronous fan-out of named events to registered handlers.

    ``on`` returns a disposer; calling it twice is harmless. A handler that
    raises is logged and does not prevent the remaining handlers from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Disposer:
        self._handlers.setdefault(event, []).append(handler)

        def dispose() -> None:
            handlers = self._handlers.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[event]

        return dispose

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception:
                logger.exception("Handler for %r failed", event)

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, ()))
        return sum(len(h) for h in self._handlers.values())


class Subscriptions:
    """Arena of disposers released together on teardown."""

    def __init__(self) -> None:
        self._disposers: list[Disposer] = []

    def add(self, disposer: Disposer) -> Disposer:
        self._disposers.append(disposer)
        return disposer

    def dispose_all(self) -> None:
        disposers, self._disposers = self._disposers, []
        for dispose in reversed(disposers):
            dispose()

    def __len__(self) -> int:
        return len(self._disposers)
