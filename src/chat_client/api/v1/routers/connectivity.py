from __future__ import annotations

from fastapi import APIRouter

from chat_client.api.deps import AppStateSignalDep, ClientDep, NetworkSignalDep
from chat_client.api.v1.schemas.connectivity import (
    AppStateReport,
    BackNavigationResponse,
    GateResponse,
    NetworkReport,
)

router = APIRouter(prefix="/api/v1/connectivity", tags=["connectivity"])


@router.get("", response_model=GateResponse)
async def get_gate(client: ClientDep) -> GateResponse:
    return GateResponse.from_gate(client.gate)


@router.post("/retry", response_model=GateResponse)
async def retry(client: ClientDep) -> GateResponse:
    gate = await client.retry_connection()
    return GateResponse.from_gate(gate)


@router.post("/back", response_model=BackNavigationResponse)
async def back_navigation(client: ClientDep) -> BackNavigationResponse:
    return BackNavigationResponse(suppressed=client.handle_back_navigation())


@router.post("/network", response_model=GateResponse)
async def report_network(body: NetworkReport, client: ClientDep, network: NetworkSignalDep) -> GateResponse:
    network.set_online(body.online)
    return GateResponse.from_gate(client.gate)


@router.post("/app-state", status_code=204)
async def report_app_state(body: AppStateReport, lifecycle: AppStateSignalDep) -> None:
    lifecycle.set_state(body.state)
