from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_client.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_client.api.middleware.metrics import RequestTimingMiddleware
from chat_client.api.v1.routers import (
    broadcast,
    connection,
    connectivity,
    health,
    messages,
    rooms,
    ws,
)
from chat_client.api.v1.schemas.connectivity import GateResponse
from chat_client.application.dto import events
from chat_client.application.events import Subscriptions
from chat_client.application.exceptions import (
    ApiError,
    AppError,
    ConflictError,
    ConnectivityError,
    ForbiddenError,
    NotConnectedError,
    NotFoundError,
    StorageError,
    TransportError,
    UploadError,
    ValidationError,
)
from chat_client.application.ports.clock import AsyncioScheduler, Scheduler
from chat_client.config import settings
from chat_client.infrastructure.auth.jwt_identity import JwtIdentityProvider
from chat_client.infrastructure.device.signals import AppStateSignal, DeviceNetworkSignal
from chat_client.infrastructure.http.chat_api import HttpChatApi
from chat_client.infrastructure.http.health_probe import HttpHealthProbe
from chat_client.infrastructure.http.rest_client import RestClient
from chat_client.infrastructure.http.uploader import HttpUploader
from chat_client.infrastructure.realtime.transport import SocketIOTransport
from chat_client.infrastructure.storage.redis_store import RedisKeyValueStore
from chat_client.infrastructure.ws.manager import UiSocketManager
from chat_client.services.chat_client import ChatClient
from chat_client.services.fault_reporter import ConnectivityFaultReporter

logger = logging.getLogger(__name__)

# event name -> builder of the UI payload from the emitted arguments
UI_EVENTS: dict[str, Callable[..., dict[str, Any]]] = {
    events.MESSAGES_CHANGED: lambda room_id: {"room_id": room_id},
    events.TYPING_CHANGED: lambda room_id: {"room_id": room_id},
    events.PRESENCE_CHANGED: lambda user_id, online: {"user_id": user_id, "online": online},
    events.ROOMS_CHANGED: lambda: {},
    events.NOTICE: lambda text: {"message": text},
    events.GATE_CHANGED: lambda gate: GateResponse.from_gate(gate).model_dump(),
    events.STATE_CHANGED: lambda state: {"state": str(state)},
    events.RECONNECTING: lambda attempt: {"attempt": attempt},
    events.RECONNECT_FAILED: lambda: {},
    events.ERROR: lambda detail: {"detail": str(detail)},
}


def forward_to_ui(
    client: ChatClient,
    manager: UiSocketManager,
    scheduler: Scheduler,
) -> Subscriptions:
    """Push every client event to the attached UI sockets."""
    subs = Subscriptions()
    for name, build in UI_EVENTS.items():

        def handler(*args: Any, _name: str = name, _build: Callable[..., dict[str, Any]] = build) -> None:
            if manager.count:
                scheduler.spawn(manager.broadcast(_name, _build(*args)), name=f"ui-{_name}")

        subs.add(client.on(name, handler))
    return subs


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    scheduler = AsyncioScheduler()
    reporter = ConnectivityFaultReporter()
    identity_provider = JwtIdentityProvider(settings.AUTH_TOKEN)
    rest = RestClient(
        settings.api_base_url,
        reporter,
        identity_provider=identity_provider,
        timeout=settings.HTTP_TIMEOUT,
    )
    probe = HttpHealthProbe(settings.health_url, timeout=settings.PROBE_TIMEOUT)
    network = DeviceNetworkSignal()
    lifecycle = AppStateSignal()

    client = ChatClient(
        identity_provider=identity_provider,
        transport=SocketIOTransport(
            settings.SERVER_URL,
            socketio_path=settings.SOCKETIO_PATH,
            connect_timeout=settings.CONNECT_TIMEOUT,
        ),
        api=HttpChatApi(rest, identity_provider),
        health_probe=probe,
        network=network,
        store=RedisKeyValueStore(app.state.redis),
        scheduler=scheduler,
        reporter=reporter,
        uploader=HttpUploader(rest),
        lifecycle=lifecycle,
        max_reconnect_attempts=settings.RECONNECT_ATTEMPTS,
        reconnect_delay=settings.RECONNECT_DELAY,
        force_reconnect_cooldown=settings.FORCE_RECONNECT_COOLDOWN,
        join_ack_timeout=settings.JOIN_ACK_TIMEOUT,
        typing_idle=settings.TYPING_IDLE_SECONDS,
        probe_interval=settings.PROBE_INTERVAL,
        probe_after_restore=settings.PROBE_AFTER_RESTORE,
        pins_key=settings.PINNED_ROOMS_KEY,
    )
    app.state.chat_client = client
    app.state.network_signal = network
    app.state.app_state_signal = lifecycle
    app.state.ui_sockets = UiSocketManager()
    forwarding = forward_to_ui(client, app.state.ui_sockets, scheduler)

    try:
        await client.start()
    except AppError as exc:
        logger.error("Chat session could not start: %s", exc.detail)

    yield

    forwarding.dispose_all()
    await client.close()
    await scheduler.aclose()
    await probe.aclose()
    await rest.aclose()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Campus Chat Client Bridge",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware, slow_ms=settings.SLOW_REQUEST_MS)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(rooms.router)
    app.include_router(messages.router)
    app.include_router(broadcast.router)
    app.include_router(connectivity.router)
    app.include_router(connection.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(NotConnectedError)
    async def _not_connected(_req: Request, exc: NotConnectedError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(TransportError)
    async def _transport(_req: Request, exc: TransportError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(ConnectivityError)
    async def _connectivity(_req: Request, exc: ConnectivityError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(StorageError)
    async def _storage(_req: Request, exc: StorageError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(UploadError)
    async def _upload(_req: Request, exc: UploadError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": exc.detail})

    @app.exception_handler(ApiError)
    async def _upstream(_req: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"detail": exc.detail, "upstream_status": exc.status_code},
        )
