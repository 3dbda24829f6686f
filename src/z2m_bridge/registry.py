"""In-memory registry of the accessories the bridge currently manages."""

from __future__ import annotations

from collections.abc import Iterator

from z2m_bridge.accessory import AccessoryRecord
from z2m_bridge.exceptions import DuplicateAccessoryError


class AccessoryRegistry:
    """UUID-keyed accessory records, one per IEEE address.

    Owned by the platform and mutated only by reconciliation and restore.
    ``all()`` hands out a copy; callers must not expect it to follow later
    mutations.
    """

    def __init__(self) -> None:
        # dicts keep insertion order
        self._records: dict[str, AccessoryRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, uuid: object) -> bool:
        return uuid in self._records

    def __iter__(self) -> Iterator[AccessoryRecord]:
        return iter(self.all())

    def find(self, uuid: str) -> AccessoryRecord | None:
        return self._records.get(uuid)

    def find_by_ieee_address(self, ieee_address: str) -> AccessoryRecord | None:
        wanted = ieee_address.lower()
        for record in self._records.values():
            if record.ieee_address.lower() == wanted:
                return record
        return None

    def find_by_identifier(self, identifier: str) -> AccessoryRecord | None:
        """Find by IEEE address or current friendly name (state topics use either)."""
        for record in self._records.values():
            if record.matches_identifier(identifier):
                return record
        return None

    def insert(self, record: AccessoryRecord) -> None:
        if record.uuid in self._records:
            raise DuplicateAccessoryError(record.uuid)
        self._records[record.uuid] = record

    def remove(self, uuid: str) -> AccessoryRecord | None:
        return self._records.pop(uuid, None)

    def all(self) -> list[AccessoryRecord]:
        return list(self._records.values())
