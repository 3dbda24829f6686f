"""Accessory records: one per physical Zigbee device."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from z2m_bridge.characteristics import DeviceCategory, categorize, map_state
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.structs import AccessoryHandle, DeviceRecord, PublishOutcome

if TYPE_CHECKING:
    from z2m_bridge.mqtt.publisher import CommandPublisher

logger = get_logger(__name__)


@dataclass(eq=False)
class AccessoryRecord:
    """Registry entry tying a host accessory handle to its Zigbee device.

    The handle's ``context["device"]`` mirrors ``device`` so the host
    persists the latest known snapshot with the accessory.
    """

    uuid: str
    handle: AccessoryHandle
    device: DeviceRecord
    state: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.handle.context["device"] = self.device.to_context()

    @property
    def lp(self) -> str:
        return f"accessory:{self.device.friendly_name}:"

    @property
    def ieee_address(self) -> str:
        return self.device.ieee_address

    @property
    def display_name(self) -> str:
        return self.handle.display_name

    @property
    def categories(self) -> set[DeviceCategory]:
        return categorize(self.state)

    def matches_identifier(self, identifier: str) -> bool:
        wanted = identifier.lower()
        return wanted in (self.device.ieee_address.lower(), self.device.friendly_name.lower())

    def update_device_information(self, device: DeviceRecord) -> bool:
        """Adopt a fresh snapshot; True when the cached device changed."""
        if device == self.device:
            return False
        if device.friendly_name != self.device.friendly_name:
            logger.info(
                "%s Friendly name changed to '%s'",
                self.lp,
                device.friendly_name,
                extra={"ieee_address": device.ieee_address},
            )
        self.device = device
        self.handle.context["device"] = device.to_context()
        return True

    def update_states(self, state: dict[str, Any]) -> int:
        """Merge a state payload and push mapped values to the host.

        Returns:
            Number of characteristic values pushed.

        """
        self.state.update(state)
        values, errors = map_state(state)
        for mapping, value in values:
            self.handle.update_characteristic(mapping.service, mapping.characteristic, value)
        for state_field, reason in errors.items():
            logger.warning("%s Ignoring state field '%s': %s", self.lp, state_field, reason)
        logger.debug(
            "%s Applied state update",
            self.lp,
            extra={
                "fields": sorted(state),
                "characteristics": len(values),
                "categories": sorted(self.categories),
            },
        )
        return len(values)

    async def set_state(self, publisher: CommandPublisher, **values: object) -> PublishOutcome:
        """Send a ``<friendly_name>/set`` command, e.g. ``set_state(pub, state="ON")``."""
        return await publisher.publish(f"{self.device.friendly_name}/set", json.dumps(values))
