from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpHealthProbe:
    """Bounded GET against the backend liveness endpoint.

    Deliberately bypasses RestClient: a failed probe updates reachability
    directly and must not be reported as a second fault.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def probe(self) -> bool:
        try:
            response = await self._client.get(self._url)
        except httpx.HTTPError as exc:
            logger.info("Health probe failed: %s", exc)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()
