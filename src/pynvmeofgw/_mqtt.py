"""Control-plane channel over MQTT: group maps in, beacons out."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.exceptions import GwAuthenticationError, GwError, GwTransportError
from pynvmeofgw.models.beacon import Beacon
from pynvmeofgw.models.state import GroupMapUpdate

# CONNACK reason codes that mean "credentials refused" (MQTT 3.1.1 and 5).
_AUTH_FAILURE_CODES: frozenset[int] = frozenset({4, 5, 134, 135})


@dataclass(frozen=True)
class MqttEndpoint:
    """Broker and topics the runtime connects to."""

    host: str
    port: int
    client_id: str
    map_topic: str
    beacon_topic: str
    username: str | None = None
    password: str | None = None
    tls: bool = False

    @classmethod
    def from_config(cls, config: GatewayConfig) -> MqttEndpoint:
        return cls(
            host=config.control_plane_host,
            port=config.control_plane_port,
            client_id=f"nvmeof-gw.{config.pool}.{config.group}.{config.name}",
            map_topic=config.resolved_map_topic,
            beacon_topic=config.resolved_beacon_topic,
            username=config.control_plane_username,
            password=config.control_plane_password,
            tls=config.control_plane_tls,
        )


def decode_map_payload(payload: bytes) -> GroupMapUpdate:
    """Parse a group-map message body."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise GwError(f"group map payload is not JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise GwError("group map payload is not a JSON object")
    try:
        return GroupMapUpdate.model_validate(parsed)
    except ValidationError as exc:
        raise GwError(f"invalid group map: {exc.error_count()} error(s)") from exc


def encode_beacon(beacon: Beacon) -> bytes:
    return json.dumps(beacon.to_wire(), separators=(",", ":")).encode("utf-8")


class MonitorMqttRuntime:
    """Threaded paho-mqtt runtime that emits group maps onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_map: Callable[[GroupMapUpdate], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_map = on_map
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._endpoint: MqttEndpoint | None = None
        self._connected: asyncio.Future[None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def _resolve_connected(self, error: BaseException | None) -> None:
        fut = self._connected
        if fut is None or fut.done():
            return
        if error is None:
            fut.set_result(None)
        else:
            fut.set_exception(error)

    async def start(self, endpoint: MqttEndpoint, *, timeout: float) -> None:
        """Connect, subscribe to the map topic and wait for the broker to accept us.

        Raises
        ------
        GwAuthenticationError
            If the broker refuses the credentials.
        GwTransportError
            If the broker cannot be reached or does not answer in time.
        """
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s map_topic=%s client_id=%s",
            endpoint.host,
            endpoint.port,
            endpoint.map_topic,
            endpoint.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=endpoint.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if endpoint.username:
            client.username_pw_set(endpoint.username, endpoint.password)
        if endpoint.tls:
            client.tls_set()

        self._endpoint = endpoint
        self._connected = self._loop.create_future()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            code = int(reason_code.value)
            if code != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                error: GwError
                if code in _AUTH_FAILURE_CODES:
                    error = GwAuthenticationError(f"control plane refused credentials: {reason_code}")
                else:
                    error = GwTransportError(f"control plane refused connection: {reason_code}")
                self._loop.call_soon_threadsafe(self._resolve_connected, error)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            c.subscribe(endpoint.map_topic, qos=1)
            self._loop.call_soon_threadsafe(self._resolve_connected, None)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                update = decode_map_payload(msg.payload)
            except GwError:
                self._logger.warning("Dropping undecodable group map on %s", msg.topic, exc_info=True)
                return
            self._logger.debug("Received group map topic=%s epoch=%s", msg.topic, update.epoch)
            self._loop.call_soon_threadsafe(self._on_map, update)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(endpoint.host, endpoint.port, keepalive=self._keepalive)
        except OSError as exc:
            raise GwTransportError(f"cannot reach control plane at {endpoint.host}:{endpoint.port}: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

        try:
            await asyncio.wait_for(self._connected, timeout)
        except TimeoutError as exc:
            self.stop()
            raise GwTransportError(f"control plane did not answer within {timeout}s") from exc
        except GwError:
            self.stop()
            raise

    def publish(self, topic: str, payload: bytes) -> None:
        client = self._client
        if client is None or not self._running:
            self._logger.debug("MQTT not running; dropping publish to %s", topic)
            return
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("MQTT publish to %s failed rc=%s", topic, info.rc)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._endpoint = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")


class MqttControlPlane:
    """:class:`~pynvmeofgw.interfaces.ControlPlane` publishing beacons over MQTT."""

    def __init__(self, runtime: MonitorMqttRuntime, beacon_topic: str) -> None:
        self._runtime = runtime
        self._beacon_topic = beacon_topic

    async def send_beacon(self, beacon: Beacon) -> None:
        self._runtime.publish(self._beacon_topic, encode_beacon(beacon))
