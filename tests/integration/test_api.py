"""Integration smoke tests for the UI bridge (chat core wired to in-memory fakes)."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_client.api.middleware.correlation_id import RequestIdLogFilter
from chat_client.app import create_app, forward_to_ui
from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.exceptions import ApiError, StorageError
from chat_client.application.ports.clock import AsyncioScheduler
from chat_client.domain.value_objects.enums import SenderRole
from chat_client.infrastructure.device.signals import AppStateSignal, DeviceNetworkSignal
from chat_client.infrastructure.ws.manager import UiSocketManager
from chat_client.services.chat_client import ChatClient
from tests.conftest import (
    FakeChatApi,
    FakeHealthProbe,
    FakeKeyValueStore,
    FakeTransport,
    FakeUploader,
    StaticIdentityProvider,
    make_identity,
    make_message,
    make_room,
)


class FakeRedis:
    async def ping(self) -> bool:
        return True


@dataclass
class Fakes:
    transport: FakeTransport = field(default_factory=FakeTransport)
    api: FakeChatApi = field(default_factory=lambda: FakeChatApi(rooms=[
        make_room(1, name="Ana Lee", minutes=30),
        make_room(2, name="Ben Cho", minutes=10),
    ]))
    probe: FakeHealthProbe = field(default_factory=FakeHealthProbe)
    store: FakeKeyValueStore = field(default_factory=FakeKeyValueStore)


@pytest.fixture
def fakes() -> Fakes:
    return Fakes()


@pytest.fixture
def app(fakes) -> FastAPI:
    app = create_app()

    @asynccontextmanager
    async def _lifespan(app_: FastAPI) -> AsyncIterator[None]:
        scheduler = AsyncioScheduler()
        network = DeviceNetworkSignal()
        lifecycle = AppStateSignal()
        client = ChatClient(
            identity_provider=StaticIdentityProvider(make_identity(SenderRole.FACULTY, user_id=3)),
            transport=fakes.transport,
            api=fakes.api,
            health_probe=fakes.probe,
            network=network,
            store=fakes.store,
            scheduler=scheduler,
            uploader=FakeUploader(),
            lifecycle=lifecycle,
        )
        app_.state.redis = FakeRedis()
        app_.state.chat_client = client
        app_.state.network_signal = network
        app_.state.app_state_signal = lifecycle
        app_.state.ui_sockets = UiSocketManager()
        forwarding = forward_to_ui(client, app_.state.ui_sockets, scheduler)
        await client.start()
        await asyncio.sleep(0)
        yield
        forwarding.dispose_all()
        await client.close()
        await scheduler.aclose()

    app.router.lifespan_context = _lifespan
    return app


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"]


def test_readyz_when_joined(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ready",
        "checks": {"store": "ok", "socket": "ok"},
        "gate_visible": False,
    }


def test_list_rooms(client):
    resp = client.get("/api/v1/rooms")
    assert resp.status_code == 200
    data = resp.json()
    assert [r["id"] for r in data] == [1, 2]
    assert data[0]["participant_name"] == "Ana Lee"
    assert data[0]["pinned"] is False


def test_pin_moves_room_first(client, fakes):
    resp = client.post("/api/v1/rooms/2/pin")
    assert resp.status_code == 200
    assert resp.json() == {"room_id": 2, "pinned": True}

    rooms = client.get("/api/v1/rooms").json()
    assert [r["id"] for r in rooms] == [2, 1]
    assert fakes.store.data


def test_pin_store_outage_maps_to_service_unavailable(client, fakes):
    fakes.store.fail_with = StorageError("write chat:pinned_rooms: connection refused")

    resp = client.post("/api/v1/rooms/2/pin")

    assert resp.status_code == 503
    assert [r["pinned"] for r in client.get("/api/v1/rooms").json()] == [False, False]


def test_join_room_loads_history(client, fakes):
    fakes.api.history[1] = [make_message(message_id=5, room_id=1, sender_id=11, body="hi")]

    resp = client.post("/api/v1/rooms/1/join")
    assert resp.status_code == 200
    assert resp.json() == {"room_id": 1, "joined": True}

    messages = client.get("/api/v1/rooms/1/messages").json()
    assert [(m["id"], m["body"], m["pending"]) for m in messages] == [(5, "hi", False)]


def test_send_message_returns_pending_entry(client):
    resp = client.post("/api/v1/rooms/1/messages", json={"body": "Hello"})
    assert resp.status_code == 202
    data = resp.json()
    assert data["body"] == "Hello"
    assert data["pending"] is True
    assert data["sender_id"] == 3


def test_send_blank_message_rejected(client):
    resp = client.post("/api/v1/rooms/1/messages", json={"body": "   "})
    assert resp.status_code == 422


def test_edit_unknown_message_not_found(client):
    resp = client.put("/api/v1/messages/999", json={"body": "changed"})
    assert resp.status_code == 404


def test_broadcast_summary(client, fakes):
    fakes.api.broadcast_result = BroadcastResult(success_count=9, total_students=12)

    resp = client.post("/api/v1/broadcast", json={"body": "Exam moved to Friday"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success_count": 9,
        "total_students": 12,
        "partial": True,
        "summary": "sent to 9 out of 12",
    }


def test_upstream_error_maps_to_bad_gateway(client, fakes):
    fakes.api.fail_with = ApiError(500, "boom")

    resp = client.post("/api/v1/rooms/refresh")

    assert resp.status_code == 502
    assert resp.json()["upstream_status"] == 500


def test_connectivity_gate_flow(client):
    assert client.get("/api/v1/connectivity").json()["visible"] is False

    resp = client.post("/api/v1/connectivity/network", json={"online": False})
    gate = resp.json()
    assert gate["visible"] is True
    assert gate["fault"]["type"] == "no_internet"
    assert gate["fault"]["title"] == "No Internet Connection"

    assert client.post("/api/v1/connectivity/back").json() == {"suppressed": True}

    client.post("/api/v1/connectivity/network", json={"online": True})
    assert client.post("/api/v1/connectivity/back").json() == {"suppressed": False}


def test_connection_status(client):
    resp = client.get("/api/v1/connection")
    assert resp.status_code == 200
    data = resp.json()
    assert data["state"] == "joined"
    assert data["is_connected"] is True
    assert data["reconnect_attempts"] == 0


def test_ui_socket_ping(client):
    with client.websocket_connect("/ws/ui") as ws:
        ws.send_text('{"type": "ping"}')
        assert ws.receive_json() == {"type": "pong", "data": {}}

        ws.send_text("not json")
        assert ws.receive_json()["data"]["code"] == "invalid_payload"


def test_ui_socket_receives_gate_changes(client):
    with client.websocket_connect("/ws/ui") as ws:
        client.post("/api/v1/connectivity/network", json={"online": False})

        event = ws.receive_json()

    assert event["type"] == "gate.changed"
    assert event["data"]["visible"] is True


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/rooms", headers={"X-Request-ID": "ui-123"})

    assert resp.headers["X-Request-ID"] == "ui-123"


def test_request_id_log_filter_defaults_outside_requests():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    assert RequestIdLogFilter().filter(record) is True
    assert record.request_id == "-"
