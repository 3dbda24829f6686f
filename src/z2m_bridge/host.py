"""Standalone accessory host.

Implements the host side of the bridge (accessory handles, registration and
UUID derivation) in-process, with an optional YAML file caching registered
accessories across restarts.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from z2m_bridge.exceptions import HostUnregistrationError
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.structs import AccessoryHandle

logger = get_logger(__name__)

# fixed namespace so a device keeps its UUID across runs
ACCESSORY_NAMESPACE = uuid.UUID("6f1c8f5e-2b7a-4c1d-9e0a-5a6c2d8b9f41")


@dataclass(eq=False)
class PlatformAccessory:
    """A host accessory and its last published characteristic values."""

    display_name: str
    uuid: str
    context: dict[str, Any] = field(default_factory=dict)
    characteristics: dict[str, dict[str, object]] = field(default_factory=dict)

    def update_characteristic(self, service: str, characteristic: str, value: object) -> None:
        self.characteristics.setdefault(service, {})[characteristic] = value

    def to_cache(self) -> dict[str, Any]:
        return {"display_name": self.display_name, "uuid": self.uuid, "context": self.context}

    @classmethod
    def from_cache(cls, data: dict[str, Any]) -> PlatformAccessory:
        return cls(
            display_name=str(data["display_name"]),
            uuid=str(data["uuid"]),
            context=dict(data.get("context") or {}),
        )


class StandaloneHost:
    """In-process host keyed by accessory UUID."""

    lp: str = "host:"

    def __init__(self, cache_file: str | Path | None = None) -> None:
        self.cache_file: Path | None = Path(cache_file) if cache_file else None
        self.accessories: dict[str, PlatformAccessory] = {}

    def uuid_from_identifier(self, identifier: str) -> str:
        return str(uuid.uuid5(ACCESSORY_NAMESPACE, identifier))

    def platform_accessory(self, display_name: str, accessory_uuid: str) -> PlatformAccessory:
        return PlatformAccessory(display_name=display_name, uuid=accessory_uuid)

    def register_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        for handle in handles:
            self.accessories[handle.uuid] = cast("PlatformAccessory", handle)
        logger.info(
            "%s Registered %d accessory(ies)",
            self.lp,
            len(handles),
            extra={"plugin": plugin_name, "platform": platform_name},
        )
        self.save()

    def update_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        logger.debug(
            "%s Updated %d accessory(ies)",
            self.lp,
            len(handles),
            extra={"plugin": plugin_name, "platform": platform_name},
        )
        self.save()

    def unregister_accessories(self, plugin_name: str, platform_name: str, handles: Sequence[AccessoryHandle]) -> None:
        missing = [handle.uuid for handle in handles if handle.uuid not in self.accessories]
        for handle in handles:
            _ = self.accessories.pop(handle.uuid, None)
        self.save()
        if missing:
            raise HostUnregistrationError(missing, "accessory not registered")
        logger.info(
            "%s Unregistered %d accessory(ies)",
            self.lp,
            len(handles),
            extra={"plugin": plugin_name, "platform": platform_name},
        )

    def load(self) -> list[PlatformAccessory]:
        """Read cached accessories, registering them with this host."""
        lp = f"{self.lp}load:"
        if self.cache_file is None or not self.cache_file.exists():
            return []
        with self.cache_file.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f) or []
        if not isinstance(raw, list):
            logger.warning("%s Ignoring accessory cache with unexpected structure: %s", lp, self.cache_file)
            return []
        restored: list[PlatformAccessory] = []
        for entry in cast("Iterable[object]", raw):
            if not isinstance(entry, dict) or "uuid" not in entry or "display_name" not in entry:
                logger.warning("%s Skipping invalid cache entry: %r", lp, entry)
                continue
            accessory = PlatformAccessory.from_cache(cast("dict[str, Any]", entry))
            self.accessories[accessory.uuid] = accessory
            restored.append(accessory)
        logger.debug("%s Loaded %d cached accessory(ies) from %s", lp, len(restored), self.cache_file)
        return restored

    def save(self) -> None:
        if self.cache_file is None:
            return
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with self.cache_file.open("w", encoding="utf-8") as f:
            yaml.safe_dump([acc.to_cache() for acc in self.accessories.values()], f, sort_keys=False)
