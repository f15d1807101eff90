from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import (
    FaultType,
    NetworkState,
    ServerReachability,
)


@dataclass(frozen=True, slots=True)
class ConnectivityFault:
    title: str
    message: str
    type: FaultType


NO_INTERNET = ConnectivityFault(
    title="No Internet Connection",
    message=(
        "Your device is not connected to the internet. "
        "Please check your WiFi or mobile data connection."
    ),
    type=FaultType.NO_INTERNET,
)

SERVER_UNREACHABLE = ConnectivityFault(
    title="Server Connection Lost",
    message=(
        "Unable to connect to the university server. "
        "Please check your internet connection."
    ),
    type=FaultType.SERVER_ERROR,
)

CONNECTION_LOST = ConnectivityFault(
    title="Connection Lost",
    message=(
        "Unable to connect to the university server. "
        "Please check your internet connection."
    ),
    type=FaultType.NETWORK_ERROR,
)

SERVER_FAILING = ConnectivityFault(
    title="Server Error",
    message="The university server is experiencing issues. Please try again later.",
    type=FaultType.SERVER_ERROR,
)


@dataclass(frozen=True, slots=True)
class GateState:
    """Blocking-modal state derived from the two connectivity inputs."""

    network: NetworkState
    server: ServerReachability
    fault: ConnectivityFault | None = None

    @property
    def visible(self) -> bool:
        return (
            self.network == NetworkState.OFFLINE
            or self.server == ServerReachability.UNREACHABLE
        )
