"""Gateway coordinator: group-map reconciliation and heartbeats."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pynvmeofgw._mqtt import MonitorMqttRuntime, MqttControlPlane, MqttEndpoint
from pynvmeofgw._redact import redact_for_log
from pynvmeofgw._retry import Backoff, wait_or_shutdown
from pynvmeofgw._transport import HttpTransport
from pynvmeofgw.beacon import BeaconReporter
from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.convergence import ConvergenceActuator, GroupAdmission
from pynvmeofgw.exceptions import GwError, GwRejectedError, GwRetryExhaustedError, GwShutdownError
from pynvmeofgw.interfaces import AdmissionRpc, ControlPlane, GatewayRpc
from pynvmeofgw.models.beacon import Beacon
from pynvmeofgw.models.state import GroupKey, GroupMapUpdate, GroupSnapshot
from pynvmeofgw.rpc import AdmissionRpcClient, GatewayRpcClient
from pynvmeofgw.state.cache import StateCache, lookup_gateway_state
from pynvmeofgw.state.diff import compute_ana_diff

_logger = logging.getLogger(__name__)


class ReconcileOutcome(enum.StrEnum):
    """What one group-map update did."""

    SKIPPED = "skipped"
    """This gateway is in neither the cached nor the new map; nothing changed."""
    REMOVED = "removed"
    """This gateway left the map; nothing pushed, cache replaced."""
    NOOP = "noop"
    """Known gateway, identical state; cache replaced, nothing pushed."""
    PUSHED = "pushed"
    """Known gateway, changed state pushed; cache replaced."""
    ADMITTED = "admitted"
    """First sighting: group claimed, full state pushed; cache replaced."""
    REJECTED = "rejected"
    """A remote side refused the request as invalid; cache untouched."""
    CANCELLED = "cancelled"
    """Shutdown preempted a retry loop; cache untouched."""
    EXHAUSTED = "exhausted"
    """A capped retry loop gave up; cache untouched."""


class GatewayCoordinator:
    """Drive one gateway group: reconcile group maps and send beacons.

    Usage::

        async with GatewayCoordinator(config) as coordinator:
            await coordinator.wait_closed()

    Collaborators that are not passed in are created on ``__aenter__``:
    HTTP RPC clients for the gateway and the monitor group service, and an
    MQTT control-plane channel.

    Concurrency: the state cache is guarded by one lock that is held only
    to read or replace a snapshot. Each group additionally has a token so
    at most one reconciliation per group is in flight and updates apply in
    arrival order. Remote retry loops run outside the cache lock, so a
    stuck gateway never delays beacons.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        gateway: GatewayRpc | None = None,
        admission: AdmissionRpc | None = None,
        control_plane: ControlPlane | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config.validate()
        self._group_key = config.group_key
        self._cache = StateCache()
        self._cache.bind(self._group_key)
        self._cache_lock = asyncio.Lock()
        self._group_tokens: dict[GroupKey, asyncio.Lock] = {}
        self._shutdown = asyncio.Event()
        self._updates: asyncio.Queue[GroupMapUpdate] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []

        self._gateway = gateway
        self._admission = admission
        self._control_plane = control_plane
        self._external_session = session is not None
        self._http_session = session
        self._mqtt_runtime: MonitorMqttRuntime | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> GatewayCoordinator:
        _logger.info(
            "Starting gateway monitor name=%s pool=%s group=%s address=%s",
            self._config.name,
            self._config.pool,
            self._config.group,
            self._config.gateway_address,
        )
        _logger.debug("Configuration: %s", redact_for_log(self._config))
        try:
            await self._connect()
        except BaseException:
            await self.shutdown()
            raise
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.shutdown()

    async def _connect(self) -> None:
        if self._gateway is None or self._admission is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            if self._gateway is None:
                self._gateway = GatewayRpcClient(
                    HttpTransport(self._config.gateway_address, self._http_session, timeout=self._config.rpc_timeout)
                )
            if self._admission is None:
                self._admission = AdmissionRpcClient(
                    HttpTransport(self._config.monitor_address, self._http_session, timeout=self._config.rpc_timeout)
                )
        if self._control_plane is None:
            endpoint = MqttEndpoint.from_config(self._config)
            runtime = MonitorMqttRuntime(
                loop=asyncio.get_running_loop(),
                on_map=self.submit_map_update,
                keepalive=self._config.mqtt_keepalive,
                logger=_logger,
            )
            self._mqtt_runtime = runtime
            await runtime.start(endpoint, timeout=self._config.connect_timeout)
            self._control_plane = MqttControlPlane(runtime, endpoint.beacon_topic)
            _logger.info("Connected to control plane %s:%s", endpoint.host, endpoint.port)

    def start(self) -> None:
        """Start the beacon tick and the map dispatcher. Idempotent."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._beacon_loop(), name="nvmeof-gw-beacon"),
            asyncio.create_task(self._dispatch_loop(), name="nvmeof-gw-dispatch"),
        ]

    async def shutdown(self) -> None:
        """Stop ticking, preempt retry loops, release owned resources.

        The cache is dropped: a fresh start always goes through first sighting.
        """
        _logger.info("Shutting down gateway monitor")
        self._shutdown.set()

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is not None:
            runtime.stop()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

        self._cache.clear()

    async def wait_closed(self) -> None:
        """Block until :meth:`shutdown` has been requested."""
        await self._shutdown.wait()

    def request_shutdown(self) -> None:
        """Signal shutdown from a signal handler; call :meth:`shutdown` to finish."""
        self._shutdown.set()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def group_key(self) -> GroupKey:
        return self._group_key

    @property
    def cache(self) -> StateCache:
        """Read access for callers and tests; only the coordinator mutates it."""
        return self._cache

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown.is_set()

    def _require_gateway(self) -> GatewayRpc:
        if self._gateway is None:
            raise GwError("Coordinator not initialized. Use 'async with GatewayCoordinator(...)'")
        return self._gateway

    def _require_admission(self) -> AdmissionRpc:
        if self._admission is None:
            raise GwError("Coordinator not initialized. Use 'async with GatewayCoordinator(...)'")
        return self._admission

    def _require_control_plane(self) -> ControlPlane:
        if self._control_plane is None:
            raise GwError("Coordinator not initialized. Use 'async with GatewayCoordinator(...)'")
        return self._control_plane

    def _backoff(self) -> Backoff:
        return Backoff(
            initial_delay=self._config.retry_initial_delay,
            max_delay=self._config.retry_max_delay,
            factor=self._config.retry_factor,
            jitter=self._config.retry_jitter,
        )

    def _group_token(self, key: GroupKey) -> asyncio.Lock:
        token = self._group_tokens.get(key)
        if token is None:
            token = asyncio.Lock()
            self._group_tokens[key] = token
        return token

    # ------------------------------------------------------------------
    # Group map reconciliation
    # ------------------------------------------------------------------

    def submit_map_update(self, update: GroupMapUpdate) -> None:
        """Queue a map update for the dispatcher (must run on the loop thread)."""
        if self._shutdown.is_set():
            _logger.debug("Ignoring group map epoch=%s during shutdown", update.epoch)
            return
        self._updates.put_nowait(update)

    async def _dispatch_loop(self) -> None:
        while True:
            update = await self._updates.get()
            try:
                await self.handle_map_update(update)
            except Exception:
                _logger.exception("Unexpected failure handling group map epoch=%s", update.epoch)
            finally:
                self._updates.task_done()

    async def handle_map_update(
        self,
        update: GroupMapUpdate | Mapping[GroupKey, GroupSnapshot],
    ) -> ReconcileOutcome:
        """Reconcile the managed gateway with a new group map.

        Only this process's group is considered. First sighting of this
        gateway claims the group id before anything is pushed. A gateway
        that drops out of the map is forgotten without any push. The cached
        snapshot for the group is replaced by the new one (all gateways)
        once every required remote call was acknowledged, including when
        nothing had to be pushed.
        """
        group_map = update.to_group_map() if isinstance(update, GroupMapUpdate) else update
        key = self._group_key
        gw_id = self._config.name
        _logger.debug("Handle group map: %s", redact_for_log(group_map, max_string=128))

        async with self._group_token(key):
            async with self._cache_lock:
                old_state = self._cache.get_gateway_state(key, gw_id, desc="old map")
            new_state = lookup_gateway_state("new map", group_map, key, gw_id)
            if new_state is None:
                if old_state is None:
                    _logger.info("Can not find old or new gw state for %s in group %s", gw_id, key)
                    return ReconcileOutcome.SKIPPED
                # Left the map: nothing to push, forget it so a re-add is a first sighting.
                async with self._cache_lock:
                    if key in group_map:
                        self._cache.replace(key, group_map[key])
                    else:
                        self._cache.discard(key)
                _logger.info("Gateway %s left group %s; cached snapshot replaced", gw_id, key)
                return ReconcileOutcome.REMOVED

            first_sighting = old_state is None
            try:
                if first_sighting:
                    await GroupAdmission(
                        self._require_admission(),
                        backoff=self._backoff(),
                        shutdown=self._shutdown,
                        max_attempts=self._config.retry_max_attempts,
                    ).admit(new_state.group_id)
                diff = compute_ana_diff(old_state, new_state)
                if diff:
                    await ConvergenceActuator(
                        self._require_gateway(),
                        backoff=self._backoff(),
                        shutdown=self._shutdown,
                        max_attempts=self._config.retry_max_attempts,
                    ).push(diff)
            except GwRejectedError as exc:
                _logger.error("Group %s: request rejected, keeping previous state: %s", key, exc)
                return ReconcileOutcome.REJECTED
            except GwShutdownError as exc:
                _logger.info("Group %s: reconciliation interrupted: %s", key, exc)
                return ReconcileOutcome.CANCELLED
            except GwRetryExhaustedError as exc:
                _logger.error("Group %s: giving up, keeping previous state: %s", key, exc)
                return ReconcileOutcome.EXHAUSTED

            async with self._cache_lock:
                self._cache.replace(key, group_map[key])
            _logger.info("Group %s: cached snapshot replaced (%d gateway(s))", key, len(group_map[key]))

        if first_sighting:
            _logger.info("Gateway %s admitted to group %s with group id %d", gw_id, key, new_state.group_id)
            return ReconcileOutcome.ADMITTED
        if diff:
            return ReconcileOutcome.PUSHED
        _logger.debug("Group %s: no ANA state change", key)
        return ReconcileOutcome.NOOP

    # ------------------------------------------------------------------
    # Beacons
    # ------------------------------------------------------------------

    async def send_beacon(self) -> Beacon:
        """Probe the gateway and report inventory and availability once."""
        reporter = BeaconReporter(self._config, self._require_gateway(), self._require_control_plane())
        inventory, probe_ok = await reporter.probe()
        async with self._cache_lock:
            has_prior_state = self._cache.has_gateway_state(self._group_key, self._config.name)
        return await reporter.report(has_prior_state=has_prior_state, inventory=inventory, probe_ok=probe_ok)

    async def _beacon_loop(self) -> None:
        period = self._config.beacon_period
        while not self._shutdown.is_set():
            try:
                await self.send_beacon()
            except Exception:
                _logger.warning("Sending beacon failed", exc_info=True)
            if await wait_or_shutdown(self._shutdown, period):
                break
