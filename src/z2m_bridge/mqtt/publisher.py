"""Outbound command publishing below the Zigbee2MQTT base topic."""

from __future__ import annotations

from collections.abc import Mapping

from z2m_bridge.const import DEFAULT_PUBLISH_OPTIONS
from z2m_bridge.exceptions import NotConnectedError
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.structs import PublishOutcome, TransportProtocol

logger = get_logger(__name__)


class CommandPublisher:
    """At-most-once publisher: no queueing and no retries.

    A disconnected transport yields ``PublishOutcome.NOT_CONNECTED`` without
    touching the transport; so does a transport that drops between the
    connection check and the publish. Other transport errors propagate to the
    caller unchanged.
    """

    lp: str = "publisher:"

    def __init__(self, transport: TransportProtocol, base_topic: str) -> None:
        self.transport: TransportProtocol = transport
        self.base_topic: str = base_topic

    async def publish(
        self,
        topic: str,
        payload: str | bytes,
        options: Mapping[str, int | bool] | None = None,
    ) -> PublishOutcome:
        lp = f"{self.lp}publish:"
        full_topic = f"{self.base_topic}/{topic}"
        merged = {**DEFAULT_PUBLISH_OPTIONS, **(options or {})}
        if not self.transport.is_connected:
            logger.error("%s Not connected to MQTT server!", lp)
            logger.error("%s Cannot send message to '%s': %r", lp, full_topic, payload)
            return PublishOutcome.NOT_CONNECTED

        logger.info("%s Publish to '%s': %r", lp, full_topic, payload, extra={"options": merged})
        try:
            await self.transport.publish(
                full_topic,
                payload,
                qos=int(merged["qos"]),
                retain=bool(merged["retain"]),
            )
        except NotConnectedError:
            logger.error("%s Connection lost before publishing to '%s'", lp, full_topic)
            return PublishOutcome.NOT_CONNECTED
        return PublishOutcome.PUBLISHED
