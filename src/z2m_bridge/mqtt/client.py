"""MQTT transport for the bridge.

Owns the aiomqtt connection: connect/reconnect, subscription to the
Zigbee2MQTT base topic, and handing every inbound message to a single
consumer callback in arrival order.
"""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlsplit

import aiomqtt

from z2m_bridge.config import MqttConfig
from z2m_bridge.const import Z2M_MQTT_CONN_DELAY
from z2m_bridge.exceptions import NotConnectedError
from z2m_bridge.logging_abstraction import get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[str, bytes], Awaitable[None]]
ConnectHandler = Callable[[], Awaitable[None]]

_TLS_SCHEMES = ("mqtts", "ssl", "tls", "wss")
_PROTOCOL_VERSIONS = {
    3: aiomqtt.ProtocolVersion.V31,
    4: aiomqtt.ProtocolVersion.V311,
    5: aiomqtt.ProtocolVersion.V5,
}


def _payload_bytes(payload: object) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, bytes | bytearray):
        return bytes(payload)
    return str(payload).encode()


class MQTTClient:
    """aiomqtt wrapper with a reconnect loop and a single message consumer."""

    lp: str = "mqtt:"

    def __init__(
        self,
        config: MqttConfig,
        base_topic: str,
        on_message: MessageHandler | None = None,
        on_connect: ConnectHandler | None = None,
    ) -> None:
        self.config: MqttConfig = config
        self.base_topic: str = base_topic
        self.on_message: MessageHandler | None = on_message
        self.on_connect: ConnectHandler | None = on_connect
        self.client: aiomqtt.Client | None = None
        self.start_task: asyncio.Task[None] | None = None
        self._connected: bool = False

    @property
    def is_connected(self) -> bool:
        """Advisory connection state; a publish can still fail right after this returns True."""
        return self._connected

    def client_kwargs(self) -> dict[str, Any]:
        """Translate the MQTT config into aiomqtt.Client keyword arguments."""
        lp = f"{self.lp}options:"
        cfg = self.config
        url = urlsplit(cfg.server or "mqtt://localhost")
        use_tls = url.scheme in _TLS_SCHEMES or bool(cfg.ca)
        kwargs: dict[str, Any] = {
            "hostname": url.hostname or "localhost",
            "port": url.port or (8883 if use_tls else 1883),
        }

        if cfg.version:
            kwargs["protocol"] = _PROTOCOL_VERSIONS.get(cfg.version, aiomqtt.ProtocolVersion.V311)

        if cfg.keepalive:
            logger.debug("%s Using MQTT keepalive: %s", lp, cfg.keepalive)
            kwargs["keepalive"] = cfg.keepalive

        if cfg.user and cfg.password:
            kwargs["username"] = cfg.user
            kwargs["password"] = cfg.password

        if cfg.client_id:
            logger.debug("%s Using MQTT client ID: '%s'", lp, cfg.client_id)
            kwargs["identifier"] = cfg.client_id

        if use_tls:
            if cfg.ca:
                logger.debug("%s MQTT SSL/TLS: Path to CA certificate = %s", lp, cfg.ca)
            certfile = keyfile = None
            if cfg.key and cfg.cert:
                logger.debug("%s MQTT SSL/TLS: Path to client key = %s", lp, cfg.key)
                logger.debug("%s MQTT SSL/TLS: Path to client certificate = %s", lp, cfg.cert)
                certfile, keyfile = cfg.cert, cfg.key
            cert_reqs = ssl.CERT_REQUIRED
            if not cfg.reject_unauthorized:
                logger.debug("%s MQTT reject_unauthorized set false, ignoring certificate warnings.", lp)
                cert_reqs = ssl.CERT_NONE
                kwargs["tls_insecure"] = True
            kwargs["tls_params"] = aiomqtt.TLSParameters(
                ca_certs=cfg.ca,
                certfile=certfile,
                keyfile=keyfile,
                cert_reqs=cert_reqs,
            )
        return kwargs

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        self._connected = False
        logger.info("%s Connecting to MQTT server at %s", lp, self.config.server)
        self.client = aiomqtt.Client(**self.client_kwargs())
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as mqtt_err:
            # [code:134] Bad user name or password
            logger.error("%s Connection failed [MqttError]: %s", lp, mqtt_err)
            if "code:134" in str(mqtt_err):
                logger.error(
                    "%s Bad username or password, check your MQTT credentials (username: %s)",
                    lp,
                    self.config.user,
                )
            return False
        self._connected = True
        logger.info("%s Connected to MQTT server", lp)
        return True

    async def _receive(self) -> None:
        lp = f"{self.lp}rcv:"
        assert self.client is not None, "client must be connected"
        topic = f"{self.base_topic}/#"
        await self.client.subscribe(topic)
        logger.debug("%s Subscribed to MQTT topic: %s. Waiting for MQTT messages...", lp, topic)
        if self.on_connect is not None:
            await self.on_connect()
        async for message in self.client.messages:
            if self.on_message is None:
                continue
            await self.on_message(message.topic.value, _payload_bytes(message.payload))

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        try:
            while True:
                if await self.connect():
                    try:
                        await self._receive()
                    except aiomqtt.MqttError as msg_err:
                        logger.warning("%s MQTT error: %s, reconnecting...", lp, msg_err)
                        self._connected = False
                        continue
                delay = Z2M_MQTT_CONN_DELAY if Z2M_MQTT_CONN_DELAY > 0 else 5
                logger.info(
                    "%s connecting to MQTT broker failed, sleeping for %s seconds before re-trying...",
                    lp,
                    delay,
                )
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s MQTT start() EXCEPTION", lp)
            raise
        finally:
            self._connected = False

    async def publish(self, topic: str, payload: str | bytes, qos: int = 0, retain: bool = False) -> None:
        """Publish and wait for the broker acknowledgement (per ``qos``).

        Raises:
            NotConnectedError: No live connection
            aiomqtt.MqttError: The publish itself failed

        """
        if not self._connected or self.client is None:
            raise NotConnectedError(topic)
        try:
            await self.client.publish(topic, payload, qos=qos, retain=retain)
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] publish to %s -> %s", f"{self.lp}publish:", topic, mqtt_err)
            raise

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        try:
            if self.client is not None and self._connected:
                logger.debug("%s Disconnecting from broker...", lp)
                await self.client.__aexit__(None, None, None)
        except aiomqtt.MqttError as ce:
            logger.warning("%s MQTT disconnect failed: %s", lp, ce)
        else:
            logger.info("%s Disconnected from MQTT broker", lp)
        finally:
            self._connected = False
            if self.start_task and not self.start_task.done():
                logger.debug("%s FINISHING: Cancelling start task", lp)
                _ = self.start_task.cancel()
