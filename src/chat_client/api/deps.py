"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from chat_client.infrastructure.device.signals import AppStateSignal, DeviceNetworkSignal
from chat_client.infrastructure.ws.manager import UiSocketManager
from chat_client.services.chat_client import ChatClient


def get_client(request: Request) -> ChatClient:
    return request.app.state.chat_client


ClientDep = Annotated[ChatClient, Depends(get_client)]


def get_network_signal(request: Request) -> DeviceNetworkSignal:
    return request.app.state.network_signal


NetworkSignalDep = Annotated[DeviceNetworkSignal, Depends(get_network_signal)]


def get_app_state_signal(request: Request) -> AppStateSignal:
    return request.app.state.app_state_signal


AppStateSignalDep = Annotated[AppStateSignal, Depends(get_app_state_signal)]


def get_ui_sockets(request: Request) -> UiSocketManager:
    return request.app.state.ui_sockets
