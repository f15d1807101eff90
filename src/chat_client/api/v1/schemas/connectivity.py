from __future__ import annotations

from pydantic import BaseModel

from chat_client.application.dto.connectivity import GateState


class FaultResponse(BaseModel):
    title: str
    message: str
    type: str


class GateResponse(BaseModel):
    visible: bool
    network: str
    server: str
    fault: FaultResponse | None = None

    @classmethod
    def from_gate(cls, gate: GateState) -> GateResponse:
        fault = None
        if gate.fault is not None:
            fault = FaultResponse(
                title=gate.fault.title,
                message=gate.fault.message,
                type=gate.fault.type.value,
            )
        return cls(
            visible=gate.visible,
            network=gate.network.value,
            server=gate.server.value,
            fault=fault,
        )


class NetworkReport(BaseModel):
    online: bool


class AppStateReport(BaseModel):
    state: str


class BackNavigationResponse(BaseModel):
    suppressed: bool


class ConnectionStatusResponse(BaseModel):
    state: str
    is_connected: bool
    socket_connected: bool
    reconnect_attempts: int
    socket_id: str | None = None
