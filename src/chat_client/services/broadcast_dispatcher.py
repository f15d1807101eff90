from __future__ import annotations

import logging

from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.dto.identity import Identity
from chat_client.application.exceptions import ConflictError, ForbiddenError, ValidationError
from chat_client.application.ports.chat_api import ChatApi
from chat_client.domain.value_objects.enums import MessageKind

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    """One logical broadcast request; the server fans it out to every room.

    The aggregate count is returned as-is. Failed targets are never retried.
    """

    def __init__(self, api: ChatApi) -> None:
        self._api = api
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def broadcast(
        self,
        sender: Identity,
        body: str,
        kind: str = MessageKind.TEXT,
    ) -> BroadcastResult:
        if not sender.is_faculty:
            raise ForbiddenError("Only faculty can broadcast")
        body = (body or "").strip()
        if not body:
            raise ValidationError("Message is required")
        if self._in_flight:
            raise ConflictError("A broadcast is already in progress")

        self._in_flight = True
        try:
            logger.info("Broadcasting message from faculty %s", sender.user_id)
            result = await self._api.broadcast(body, str(kind))
        finally:
            self._in_flight = False

        if result.is_partial:
            logger.warning(
                "Broadcast from %s reached %d/%d students",
                sender.user_id, result.success_count, result.total_students,
            )
        else:
            logger.info("Broadcast %s", result.summary)
        return result
