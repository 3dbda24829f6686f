"""Device exclusion policy shared by the snapshot and restore paths."""

from __future__ import annotations

from collections.abc import Iterable

from z2m_bridge.structs import DeviceRecord


class ExclusionFilter:
    """Case-insensitive match of devices against ``devices.exclude``.

    A device record is excluded when either its IEEE address or its friendly
    name is listed. A bare string is matched as-is.
    """

    def __init__(self, exclude: Iterable[str] | None = None) -> None:
        self._keys: frozenset[str] = frozenset(key.lower() for key in exclude or () if key)

    def is_excluded(self, subject: DeviceRecord | str | None) -> bool:
        if not self._keys or subject is None:
            return False
        if isinstance(subject, DeviceRecord):
            identifiers = (subject.ieee_address, subject.friendly_name)
        else:
            identifiers = (subject,)
        return any(identifier.lower() in self._keys for identifier in identifiers)
