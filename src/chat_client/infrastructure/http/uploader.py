from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path

from chat_client.application.exceptions import ApiError, ConnectivityError, UploadError
from chat_client.infrastructure.http.rest_client import RestClient

logger = logging.getLogger(__name__)


class HttpUploader:
    """Multipart upload to ``/upload/file``; returns the durable file URL."""

    def __init__(self, client: RestClient, *, path: str = "/upload/file") -> None:
        self._client = client
        self._path = path

    async def upload(self, local_ref: str) -> str:
        file_path = Path(local_ref)
        try:
            content = await asyncio.to_thread(file_path.read_bytes)
        except OSError as exc:
            raise UploadError(f"Cannot read {local_ref}: {exc}") from exc

        content_type = mimetypes.guess_type(file_path.name)[0] or "image/jpeg"
        try:
            resp = await self._client.post(
                self._path,
                files={"file": (file_path.name, content, content_type)},
            )
        except (ApiError, ConnectivityError) as exc:
            raise UploadError(exc.detail or "Upload failed") from exc

        result = resp.json()
        url = (result.get("file") or {}).get("url") if result.get("success") else None
        if not url:
            raise UploadError("Upload failed")
        logger.debug("Uploaded %s -> %s", local_ref, url)
        return url
