from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """Client-local persistence; failures surface as ``StorageError``."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...
