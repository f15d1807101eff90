from __future__ import annotations

from fastapi import APIRouter

from chat_client.api.deps import ClientDep
from chat_client.api.v1.schemas.room import JoinResponse, PinResponse, RoomResponse

router = APIRouter(prefix="/api/v1/rooms", tags=["rooms"])


@router.get("", response_model=list[RoomResponse])
async def list_rooms(client: ClientDep) -> list[RoomResponse]:
    return [RoomResponse.model_validate(r, from_attributes=True) for r in client.rooms()]


@router.post("/refresh", response_model=list[RoomResponse])
async def refresh_rooms(client: ClientDep) -> list[RoomResponse]:
    rooms = await client.refresh_rooms()
    return [RoomResponse.model_validate(r, from_attributes=True) for r in rooms]


@router.post("/{room_id}/pin", response_model=PinResponse)
async def toggle_pin(room_id: int, client: ClientDep) -> PinResponse:
    pinned = await client.toggle_pin(room_id)
    return PinResponse(room_id=room_id, pinned=pinned)


@router.post("/{room_id}/join", response_model=JoinResponse)
async def join_room(room_id: int, client: ClientDep) -> JoinResponse:
    await client.open_room(room_id)
    return JoinResponse(room_id=room_id, joined=room_id in client.session.joined_rooms)


@router.post("/{room_id}/leave", status_code=204)
async def leave_room(room_id: int, client: ClientDep) -> None:
    client.leave(room_id)
