from __future__ import annotations

from typing import Protocol

from chat_client.application.dto.identity import Identity


class IdentityProvider(Protocol):
    async def current(self) -> Identity: ...
