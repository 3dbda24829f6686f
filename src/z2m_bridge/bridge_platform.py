"""Zigbee2MQTT platform: glue between the MQTT bus, the registry and the host.

Lifecycle:
1. The host calls ``configure_accessory`` once per cached accessory.
2. The host calls ``did_finish_launching``; only then is the MQTT receiver
   started, so every restore has completed before the first bus message.
3. Each inbound message is classified and applied in arrival order by the
   single receiver task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from z2m_bridge.classifier import classify
from z2m_bridge.config import PlatformConfig
from z2m_bridge.const import DEVICES_GET_TOPIC, DEVICES_TOPIC, MQTT_CLIENT_START_TASK_NAME, PLATFORM_NAME, PLUGIN_NAME
from z2m_bridge.correlation import correlation_context
from z2m_bridge.exceptions import DuplicateAccessoryError, HostUnregistrationError
from z2m_bridge.exclusion import ExclusionFilter
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.mqtt.client import MQTTClient
from z2m_bridge.mqtt.publisher import CommandPublisher
from z2m_bridge.reconciler import Reconciler
from z2m_bridge.registry import AccessoryRegistry
from z2m_bridge.restore import restore
from z2m_bridge.structs import (
    AccessoryHandle,
    AccessoryHost,
    ClassifiedMessage,
    FullListUpdate,
    Ignored,
    MalformedPayload,
    PublishOutcome,
    ReconcileResult,
    StateUpdate,
)

logger = get_logger(__name__)


class Zigbee2mqttPlatform:
    """Keeps host accessories in sync with the devices of one Zigbee2MQTT bridge."""

    lp: str = "platform:"

    def __init__(self, config: PlatformConfig, host: AccessoryHost, mqtt_client: MQTTClient | None = None) -> None:
        self.config: PlatformConfig = config
        self.host: AccessoryHost = host
        self.base_topic: str = config.base_topic
        self.registry: AccessoryRegistry = AccessoryRegistry()
        self.exclusion: ExclusionFilter = ExclusionFilter(config.devices.exclude)
        self.reconciler: Reconciler = Reconciler(self.registry, self.exclusion, host)
        self.mqtt_client: MQTTClient = mqtt_client or MQTTClient(config.mqtt, self.base_topic)
        self.mqtt_client.on_message = self.handle_message
        self.mqtt_client.on_connect = self.discover_devices
        self.publisher: CommandPublisher = CommandPublisher(self.mqtt_client, self.base_topic)

    def configure_accessory(self, handle: AccessoryHandle) -> None:
        """Host restore callback; must run on the event loop, before launch completes."""
        result = restore(handle, self.registry, self.exclusion)
        if result.to_unregister:
            _ = asyncio.get_running_loop().call_soon(self._unregister, list(result.to_unregister))

    async def did_finish_launching(self) -> asyncio.Task[None]:
        """Start consuming bus messages; discovery is requested once connected."""
        logger.info("%s Finished launching with %d restored accessory(ies)", self.lp, len(self.registry))
        task = asyncio.create_task(self.mqtt_client.start(), name=MQTT_CLIENT_START_TASK_NAME)
        self.mqtt_client.start_task = task
        return task

    async def discover_devices(self) -> PublishOutcome:
        return await self.publisher.publish(DEVICES_GET_TOPIC, "")

    async def stop(self) -> None:
        await self.mqtt_client.stop()

    async def handle_message(self, topic: str, payload: bytes) -> None:
        """Process one inbound message; errors are logged and never stop the stream."""
        lp = f"{self.lp}on_message:"
        with correlation_context():
            # an empty device list is malformed and goes through classification
            if not payload and topic != f"{self.base_topic}/{DEVICES_TOPIC}":
                logger.debug("%s Received empty payload for topic: %s, skipping...", lp, topic)
                return
            try:
                _ = self.process_message(topic, payload)
            except DuplicateAccessoryError:
                raise
            except Exception:
                logger.exception("%s Failed to process message on topic: %s", lp, topic)

    def process_message(self, topic: str, payload: bytes | str) -> ClassifiedMessage:
        lp = f"{self.lp}on_message:"
        message = classify(topic, self.base_topic, payload)
        logger.debug(
            "%s Classified message",
            lp,
            extra={"topic": topic, "kind": type(message).__name__, "payload_len": len(payload)},
        )
        if isinstance(message, FullListUpdate):
            self.apply(self.reconciler.reconcile(message.devices))
        elif isinstance(message, StateUpdate):
            self.handle_device_update(message.identifier, message.state)
        elif isinstance(message, MalformedPayload):
            logger.error("%s Dropping malformed payload on '%s': %s", lp, message.topic, message.reason)
        elif isinstance(message, Ignored):
            logger.debug("%s Unhandled message on topic: %s (%s)", lp, message.topic, message.reason)
        return message

    def handle_device_update(self, identifier: str, state: dict[str, object]) -> bool:
        lp = f"{self.lp}device_update:"
        if self.exclusion.is_excluded(identifier):
            return False
        record = self.registry.find_by_identifier(identifier)
        if record is None:
            logger.debug("%s Device '%s' not found for update.", lp, identifier)
            return False
        _ = record.update_states(state)
        return True

    def apply(self, result: ReconcileResult) -> None:
        """Execute the host side effects of a reconciliation pass."""
        if result.to_register:
            self.host.register_accessories(PLUGIN_NAME, PLATFORM_NAME, [rec.handle for rec in result.to_register])
        if result.to_update:
            self.host.update_accessories(PLUGIN_NAME, PLATFORM_NAME, [rec.handle for rec in result.to_update])
        if result.to_unregister:
            self._unregister([rec.handle for rec in result.to_unregister])

    def _unregister(self, handles: Sequence[AccessoryHandle]) -> None:
        lp = f"{self.lp}unregister:"
        try:
            self.host.unregister_accessories(PLUGIN_NAME, PLATFORM_NAME, handles)
        except HostUnregistrationError as exc:
            logger.warning("%s Host already dropped accessory(ies): %s", lp, exc)
        except Exception:
            logger.exception(
                "%s Failed to unregister accessory(ies)",
                lp,
                extra={"accessories": [handle.display_name for handle in handles]},
            )
