"""httpx client shared by every REST collaborator of the chat core."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from chat_client.application.dto.connectivity import CONNECTION_LOST, SERVER_FAILING
from chat_client.application.exceptions import ApiError, ConnectivityError
from chat_client.application.ports.auth import IdentityProvider
from chat_client.services.fault_reporter import ConnectivityFaultReporter

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body.get("detail") or body)
    return str(body)


class RestClient:
    """Attaches the bearer token and reports connectivity faults.

    A request that gets no HTTP response at all is reported as a lost
    connection; a 5xx response is reported as a failing server. Both are
    still raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        reporter: ConnectivityFaultReporter,
        *,
        identity_provider: IdentityProvider | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._reporter = reporter
        self._identity_provider = identity_provider
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if self._identity_provider is not None:
            identity = await self._identity_provider.current()
            headers["Authorization"] = f"Bearer {identity.token}"

        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s: no response (%s)", method, url, exc)
            self._reporter.report(CONNECTION_LOST)
            raise ConnectivityError(str(exc) or "No response from server") from exc

        if response.status_code >= 500:
            self._reporter.report(SERVER_FAILING)
        if response.is_error:
            raise ApiError(response.status_code, _error_detail(response))
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
