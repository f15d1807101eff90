"""Device network state and backend reachability, and the UI gate they drive."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from chat_client.application.dto import events
from chat_client.application.dto.connectivity import (
    NO_INTERNET,
    SERVER_UNREACHABLE,
    ConnectivityFault,
    GateState,
)
from chat_client.application.events import Disposer, EventEmitter, Subscriptions
from chat_client.application.ports.clock import Scheduler, TimerHandle
from chat_client.application.ports.network import AppLifecycle, HealthProbe, NetworkSignal
from chat_client.domain.value_objects.enums import NetworkState, ServerReachability
from chat_client.services.fault_reporter import ConnectivityFaultReporter

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Decides whether the rest of the interface is blocked.

    The gate is visible iff the device is offline or the last health probe
    (or a reported fault) marked the server unreachable. It runs independently
    of the messaging connection and is cleared only by a successful probe.
    """

    def __init__(
        self,
        network: NetworkSignal,
        probe: HealthProbe,
        scheduler: Scheduler,
        reporter: ConnectivityFaultReporter,
        *,
        lifecycle: AppLifecycle | None = None,
        probe_interval: float = 30.0,
        probe_after_restore: float = 1.0,
    ) -> None:
        self._network_signal = network
        self._probe = probe
        self._scheduler = scheduler
        self._reporter = reporter
        self._lifecycle = lifecycle
        self._probe_interval = probe_interval
        self._probe_after_restore = probe_after_restore

        self._events = EventEmitter()
        self._subs = Subscriptions()
        self._network = NetworkState.ONLINE
        self._server = ServerReachability.REACHABLE
        self._server_fault: ConnectivityFault = SERVER_UNREACHABLE
        self._probe_task: asyncio.Task[bool] | None = None
        self._interval_timer: TimerHandle | None = None
        self._restore_timer: TimerHandle | None = None
        self._started = False
        self._hold_events = False

    def on(self, event: str, handler: Callable[..., Any]) -> Disposer:
        return self._events.on(event, handler)

    @property
    def network_state(self) -> NetworkState:
        return self._network

    @property
    def server_reachability(self) -> ServerReachability:
        return self._server

    @property
    def gate(self) -> GateState:
        if self._network == NetworkState.OFFLINE:
            fault: ConnectivityFault | None = NO_INTERNET
        elif self._server == ServerReachability.UNREACHABLE:
            fault = self._server_fault
        else:
            fault = None
        return GateState(network=self._network, server=self._server, fault=fault)

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._subs.add(self._network_signal.subscribe(self._on_network_change))
        if self._lifecycle is not None:
            self._subs.add(self._lifecycle.subscribe(self._on_app_state))
        self._subs.add(self._reporter.register(self.report_fault))
        self._arm_interval()
        await self.check_server()

    async def stop(self) -> None:
        self._started = False
        self._subs.dispose_all()
        for timer in (self._interval_timer, self._restore_timer):
            if timer is not None:
                timer.cancel()
        self._interval_timer = self._restore_timer = None
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass

    def handle_back_navigation(self) -> bool:
        """True when back navigation must be suppressed (gate shown)."""
        return self.gate.visible

    async def check_server(self) -> bool:
        """Run the health probe; concurrent callers share one in-flight probe."""
        if self._probe_task is None or self._probe_task.done():
            self._probe_task = self._scheduler.spawn(self._run_probe(), name="health-probe")
        return await self._probe_task

    async def retry_connection(self) -> GateState:
        """Manual retry, reachable only from the blocking gate."""
        if not self.gate.visible:
            logger.debug("retry_connection ignored: gate not shown")
            return self.gate

        online = await self._network_signal.fetch()
        if not online:
            self._network = NetworkState.OFFLINE
            # re-show even when nothing changed
            self._events.emit(events.GATE_CHANGED, self.gate)
            return self.gate

        # The gate may only close on a successful probe, so the restored
        # network and the probe result go out as one transition.
        before = self.gate
        self._hold_events = True
        try:
            self._apply(network=NetworkState.ONLINE)
            await self.check_server()
        finally:
            self._hold_events = False
        after = self.gate
        if after != before:
            self._emit_gate(before, after)
        return after

    def report_fault(self, fault: ConnectivityFault) -> None:
        logger.warning("Connectivity fault reported: %s", fault.title)
        self._server_fault = fault
        self._apply(server=ServerReachability.UNREACHABLE, force=True)

    async def _run_probe(self) -> bool:
        reachable = await self._probe.probe()
        if reachable:
            self._apply(server=ServerReachability.REACHABLE)
        else:
            logger.info("Server connection check failed")
            self._server_fault = SERVER_UNREACHABLE
            self._apply(server=ServerReachability.UNREACHABLE)
        return reachable

    def _on_network_change(self, is_online: bool) -> None:
        state = NetworkState.ONLINE if is_online else NetworkState.OFFLINE
        if state == self._network:
            return
        logger.info("Network state changed: %s", state)
        self._apply(network=state)
        if self._restore_timer is not None:
            self._restore_timer.cancel()
            self._restore_timer = None
        if state == NetworkState.ONLINE:
            self._restore_timer = self._scheduler.call_later(
                self._probe_after_restore, self._probe_after_restore_fired,
            )

    def _probe_after_restore_fired(self) -> Any:
        self._restore_timer = None
        if self._network != NetworkState.ONLINE:
            return None
        return self.check_server()

    def _on_app_state(self, app_state: str) -> None:
        if app_state == "active" and self._network == NetworkState.ONLINE:
            self._scheduler.spawn(self.check_server(), name="health-probe-foreground")

    def _arm_interval(self) -> None:
        self._interval_timer = self._scheduler.call_later(self._probe_interval, self._on_interval)

    def _on_interval(self) -> Any:
        if not self._started:
            return None
        self._arm_interval()
        if self._network != NetworkState.ONLINE:
            return None
        return self.check_server()

    def _apply(
        self,
        *,
        network: NetworkState | None = None,
        server: ServerReachability | None = None,
        force: bool = False,
    ) -> None:
        before = self.gate
        if network is not None:
            self._network = network
        if server is not None:
            self._server = server
        after = self.gate
        if self._hold_events:
            return
        if force or after != before:
            self._emit_gate(before, after)

    def _emit_gate(self, before: GateState, after: GateState) -> None:
        if after.visible != before.visible:
            logger.info("Connectivity gate %s", "shown" if after.visible else "hidden")
        self._events.emit(events.GATE_CHANGED, after)
