"""Admit accessories the host restored from its cache at startup."""

from __future__ import annotations

from z2m_bridge.accessory import AccessoryRecord
from z2m_bridge.exclusion import ExclusionFilter
from z2m_bridge.logging_abstraction import get_logger
from z2m_bridge.registry import AccessoryRegistry
from z2m_bridge.structs import AccessoryHandle, RestoreResult, device_from_context

logger = get_logger(__name__)


def restore(handle: AccessoryHandle, registry: AccessoryRegistry, exclusion: ExclusionFilter) -> RestoreResult:
    """Seed the registry with one cached accessory.

    Accessories that are excluded, that are the coordinator, or whose cached
    device cannot be read are handed back for unregistration instead. A UUID
    already present (bus traffic got there first) is left alone.
    """
    lp = "restore:"
    device = device_from_context(handle.context)
    if device is None:
        logger.warning("%s Cached accessory '%s' has no usable device information.", lp, handle.display_name)
        return RestoreResult(to_unregister=[handle])
    if exclusion.is_excluded(device) or device.is_coordinator:
        logger.warning(
            "%s Excluded device found on startup: %s (%s).",
            lp,
            device.friendly_name,
            device.ieee_address,
        )
        return RestoreResult(to_unregister=[handle])

    if handle.uuid in registry or registry.find_by_ieee_address(device.ieee_address) is not None:
        logger.debug("%s Accessory already known: %s", lp, handle.display_name)
        return RestoreResult()

    logger.info("%s Restoring accessory: %s", lp, handle.display_name)
    registry.insert(AccessoryRecord(uuid=handle.uuid, handle=handle, device=device))
    return RestoreResult(admitted=True)
