from __future__ import annotations

from fastapi import APIRouter

from chat_client.api.deps import ClientDep
from chat_client.api.v1.schemas.message import (
    EditMessageRequest,
    MessageResponse,
    SendImageRequest,
    SendMessageRequest,
    TypingRequest,
    TypingUserResponse,
)

router = APIRouter(prefix="/api/v1", tags=["messages"])


@router.get("/rooms/{room_id}/messages", response_model=list[MessageResponse])
async def list_messages(room_id: int, client: ClientDep) -> list[MessageResponse]:
    return [MessageResponse.model_validate(m, from_attributes=True) for m in client.messages(room_id)]


@router.post("/rooms/{room_id}/messages", response_model=MessageResponse, status_code=202)
async def send_message(room_id: int, body: SendMessageRequest, client: ClientDep) -> MessageResponse:
    msg = client.send(room_id, body.body, body.kind)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/rooms/{room_id}/messages/image", response_model=MessageResponse, status_code=202)
async def send_image(room_id: int, body: SendImageRequest, client: ClientDep) -> MessageResponse:
    msg = client.send_image(room_id, body.local_ref)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.get("/rooms/{room_id}/typing", response_model=list[TypingUserResponse])
async def typing_users(room_id: int, client: ClientDep) -> list[TypingUserResponse]:
    return [TypingUserResponse.model_validate(t, from_attributes=True) for t in client.typing_users(room_id)]


@router.post("/rooms/{room_id}/typing", status_code=204)
async def send_typing(room_id: int, body: TypingRequest, client: ClientDep) -> None:
    client.send_typing(room_id, body.is_typing)


@router.put("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(message_id: int, body: EditMessageRequest, client: ClientDep) -> MessageResponse:
    msg = await client.edit_message(message_id, body.body)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", status_code=204)
async def delete_message(message_id: int, client: ClientDep) -> None:
    await client.delete_message(message_id)
