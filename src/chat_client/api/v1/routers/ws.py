from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chat_client.application.exceptions import AppError
from chat_client.config import settings
from chat_client.infrastructure.ws.protocol import WsInbound, WsOutbound
from chat_client.services.chat_client import ChatClient

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/ui")
async def ws_ui(websocket: WebSocket) -> None:
    manager = websocket.app.state.ui_sockets
    client: ChatClient = websocket.app.state.chat_client

    await manager.connect(websocket)
    heartbeat_task = asyncio.create_task(_heartbeat(websocket), name="ui-heartbeat")
    try:
        await _read_loop(websocket, client)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("UI socket error")
    finally:
        heartbeat_task.cancel()
        manager.disconnect(websocket)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.UI_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception as exc:  # noqa: BLE001
        logger.debug("UI heartbeat stopped: %s", exc)


async def _read_loop(ws: WebSocket, client: ChatClient) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await ws.send_text(
                WsOutbound(type="error", data={"code": "invalid_payload"}).model_dump_json()
            )
            continue

        if msg.type == "ping":
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())

        elif msg.type == "typing":
            await _handle_typing(ws, client, msg.data)

        else:
            await ws.send_text(
                WsOutbound(type="error", data={"code": "unknown_type", "type": msg.type}).model_dump_json()
            )


async def _handle_typing(ws: WebSocket, client: ChatClient, data: dict) -> None:
    try:
        room_id = int(data["room_id"])
        is_typing = bool(data.get("is_typing", True))
    except (KeyError, TypeError, ValueError) as exc:
        await ws.send_text(
            WsOutbound(type="error", data={"code": "invalid_data", "detail": str(exc)}).model_dump_json()
        )
        return
    try:
        client.send_typing(room_id, is_typing)
    except AppError as exc:
        await ws.send_text(
            WsOutbound(type="error", data={"code": "typing_failed", "detail": exc.detail}).model_dump_json()
        )
