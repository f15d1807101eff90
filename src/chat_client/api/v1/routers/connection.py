from __future__ import annotations

from fastapi import APIRouter

from chat_client.api.deps import ClientDep
from chat_client.api.v1.schemas.connectivity import ConnectionStatusResponse

router = APIRouter(prefix="/api/v1/connection", tags=["connection"])


@router.get("", response_model=ConnectionStatusResponse)
async def status(client: ClientDep) -> ConnectionStatusResponse:
    return ConnectionStatusResponse(**client.connection_status())


@router.post("/reconnect", response_model=ConnectionStatusResponse, status_code=202)
async def force_reconnect(client: ClientDep) -> ConnectionStatusResponse:
    client.force_reconnect()
    return ConnectionStatusResponse(**client.connection_status())


@router.post("/retry", response_model=ConnectionStatusResponse, status_code=202)
async def retry(client: ClientDep) -> ConnectionStatusResponse:
    client.connection.retry()
    return ConnectionStatusResponse(**client.connection_status())
