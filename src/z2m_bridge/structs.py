"""Core data structures and typing protocols for the Zigbee2MQTT bridge."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from z2m_bridge.const import COORDINATOR_SENTINEL

if TYPE_CHECKING:
    from z2m_bridge.accessory import AccessoryRecord


class DeviceRecord(BaseModel):
    """A device as reported by the bridge in a device list.

    Only ``ieeeAddr`` is stable over a device's lifetime. ``friendly_name``
    can be renamed at any time and is used for display and exclusion only.
    Every other field the bridge sends is kept as-is.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    ieee_address: str = Field(alias="ieeeAddr", min_length=1)
    friendly_name: str
    type: str | None = None

    @property
    def is_coordinator(self) -> bool:
        return COORDINATOR_SENTINEL in (self.type, self.friendly_name)

    def to_context(self) -> dict[str, Any]:
        """Serialize in the bridge's own field naming, for host persistence."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class FullListUpdate:
    """The bridge published its complete device list."""

    devices: list[DeviceRecord]


@dataclass(frozen=True, slots=True)
class StateUpdate:
    """A single device published its state."""

    identifier: str
    state: dict[str, Any]


@dataclass(frozen=True, slots=True)
class Ignored:
    """Topic outside the base path or of an unknown shape."""

    topic: str
    reason: str


@dataclass(frozen=True, slots=True)
class MalformedPayload:
    """Topic was recognized but its payload could not be decoded."""

    topic: str
    reason: str


ClassifiedMessage = FullListUpdate | StateUpdate | Ignored | MalformedPayload


class PublishOutcome(StrEnum):
    """Result of a command publish."""

    PUBLISHED = "published"
    NOT_CONNECTED = "not_connected"


class AccessoryHandle(Protocol):
    """Host-side accessory object, opaque to the bridge apart from these members."""

    display_name: str
    uuid: str
    context: dict[str, Any]

    def update_characteristic(self, service: str, characteristic: str, value: object) -> None:
        """Push a new characteristic value to the host."""
        ...


class AccessoryHost(Protocol):
    """The accessory registry of the host the bridge plugs into."""

    def register_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        """Register new accessories with the host."""
        ...

    def update_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        """Persist changed context of already registered accessories."""
        ...

    def unregister_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        """Remove accessories from the host."""
        ...

    def uuid_from_identifier(self, identifier: str) -> str:
        """Derive a stable accessory UUID from a device identifier."""
        ...

    def platform_accessory(self, display_name: str, accessory_uuid: str) -> AccessoryHandle:
        """Create a new, not yet registered, accessory handle."""
        ...


class TransportProtocol(Protocol):
    """Minimal MQTT transport surface the command publisher relies on."""

    @property
    def is_connected(self) -> bool:
        """Return True when the transport believes it is connected."""
        ...

    async def publish(self, topic: str, payload: str | bytes, qos: int = 0, retain: bool = False) -> None:
        """Publish and wait for the transport's acknowledgement."""
        ...


@dataclass
class ReconcileResult:
    """Host side effects produced by one reconciliation pass."""

    to_register: list[AccessoryRecord] = field(default_factory=list)
    to_update: list[AccessoryRecord] = field(default_factory=list)
    to_unregister: list[AccessoryRecord] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.to_register or self.to_update or self.to_unregister)


@dataclass
class RestoreResult:
    """Outcome of restoring one persisted accessory."""

    admitted: bool = False
    to_unregister: list[AccessoryHandle] = field(default_factory=list)


def device_from_context(context: Mapping[str, Any]) -> DeviceRecord | None:
    """Read the cached device stored on a host accessory, if it is usable."""
    raw = context.get("device")
    if isinstance(raw, DeviceRecord):
        return raw
    if not isinstance(raw, Mapping):
        return None
    try:
        return DeviceRecord.model_validate(raw)
    except ValueError:
        return None
