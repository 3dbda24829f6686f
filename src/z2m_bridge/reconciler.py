"""Reconcile the accessory registry against a full device list."""

from __future__ import annotations

from collections.abc import Sequence

from z2m_bridge.accessory import AccessoryRecord
from z2m_bridge.exclusion import ExclusionFilter
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.registry import AccessoryRegistry
from z2m_bridge.structs import AccessoryHost, DeviceRecord, ReconcileResult

logger = get_logger(__name__)


def accessory_uuid(host: AccessoryHost, ieee_address: str) -> str:
    """UUID of the accessory for a device; IEEE addresses compare by their lowercased form."""
    return host.uuid_from_identifier(ieee_address.lower())


class Reconciler:
    """Apply device list snapshots to the registry.

    ``reconcile`` mutates the registry and returns the accessories the caller
    has to register, update or unregister with the host. It does no I/O itself.
    """

    lp: str = "reconciler:"

    def __init__(self, registry: AccessoryRegistry, exclusion: ExclusionFilter, host: AccessoryHost) -> None:
        self.registry: AccessoryRegistry = registry
        self.exclusion: ExclusionFilter = exclusion
        self.host: AccessoryHost = host

    def reconcile(self, devices: Sequence[DeviceRecord]) -> ReconcileResult:
        lp = f"{self.lp}reconcile:"
        result = ReconcileResult()
        admitted: set[str] = set()

        for device in devices:
            if device.is_coordinator:
                logger.debug("%s Skip Coordinator with IEEE address: %s", lp, device.ieee_address)
                continue
            if self.exclusion.is_excluded(device):
                logger.debug(
                    "%s Skip excluded device: %s (%s)",
                    lp,
                    device.friendly_name,
                    device.ieee_address,
                )
                continue

            uuid = accessory_uuid(self.host, device.ieee_address)
            # restored records keep the UUID they were cached under
            existing = self.registry.find(uuid) or self.registry.find_by_ieee_address(device.ieee_address)
            if existing is not None:
                admitted.add(existing.uuid)
                if existing.update_device_information(device):
                    result.to_update.append(existing)
                continue

            admitted.add(uuid)
            logger.info("%s New accessory: %s", lp, device.friendly_name, extra={"ieee_address": device.ieee_address})
            handle = self.host.platform_accessory(device.friendly_name, uuid)
            record = AccessoryRecord(uuid=uuid, handle=handle, device=device)
            self.registry.insert(record)
            result.to_register.append(record)

        for record in self.registry.all():
            if record.uuid in admitted and not self.exclusion.is_excluded(record.device):
                continue
            logger.info(
                "%s Removing accessory: %s",
                lp,
                record.display_name,
                extra={"ieee_address": record.ieee_address},
            )
            _ = self.registry.remove(record.uuid)
            result.to_unregister.append(record)

        logger.debug(
            "%s Reconciled %d device(s)",
            lp,
            len(devices),
            extra={
                "registered": len(result.to_register),
                "updated": len(result.to_update),
                "unregistered": len(result.to_unregister),
                "total": len(self.registry),
            },
        )
        return result
