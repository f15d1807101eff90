from __future__ import annotations

from typing import Protocol


class Uploader(Protocol):
    async def upload(self, local_ref: str) -> str:
        """Upload a local file and return its durable URL. Raises UploadError."""
        ...
