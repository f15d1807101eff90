"""Single funnel through which any collaborator reports lost connectivity."""
from __future__ import annotations

import logging
from typing import Callable

from chat_client.application.dto.connectivity import ConnectivityFault

logger = logging.getLogger(__name__)

FaultHandler = Callable[[ConnectivityFault], None]


class ConnectivityFaultReporter:
    """Holds at most one handler; the connectivity monitor registers itself.

    Reporters (REST client, socket transport) never own the blocking modal,
    they only call ``report``.
    """

    def __init__(self) -> None:
        self._handler: FaultHandler | None = None

    def register(self, handler: FaultHandler) -> Callable[[], None]:
        if self._handler is not None and self._handler is not handler:
            logger.warning("Replacing registered connectivity fault handler")
        self._handler = handler

        def dispose() -> None:
            if self._handler is handler:
                self._handler = None

        return dispose

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    def report(self, fault: ConnectivityFault) -> None:
        if self._handler is None:
            logger.warning("Connectivity fault with no handler: %s", fault.title)
            return
        self._handler(fault)
