from __future__ import annotations

from fastapi import APIRouter

from chat_client.api.deps import ClientDep
from chat_client.api.v1.schemas.broadcast import BroadcastRequest, BroadcastResponse

router = APIRouter(prefix="/api/v1/broadcast", tags=["broadcast"])


@router.post("", response_model=BroadcastResponse)
async def broadcast(body: BroadcastRequest, client: ClientDep) -> BroadcastResponse:
    result = await client.broadcast(body.body, body.kind)
    return BroadcastResponse(
        success_count=result.success_count,
        total_students=result.total_students,
        partial=result.is_partial,
        summary=result.summary,
    )
