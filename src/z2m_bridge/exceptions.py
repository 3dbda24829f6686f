"""Exception types raised by the bridge.

Payload and connection errors are contained where they occur; registry
contract violations are programming errors and are never caught.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class MalformedPayloadError(BridgeError):
    """Inbound payload could not be decoded into the expected shape.

    Raised when:
    - The payload is not valid UTF-8 / JSON
    - A device list is not a JSON array of device objects
    - A state update is not a JSON object

    Attributes:
        topic: Topic the payload arrived on
        reason: Specific failure reason

    """

    def __init__(self, topic: str, reason: str) -> None:
        self.topic: str = topic
        self.reason: str = reason
        super().__init__(f"Malformed payload on '{topic}': {reason}")


class NotConnectedError(BridgeError):
    """Publish attempted while the MQTT transport is disconnected.

    Attributes:
        topic: Full topic of the rejected publish

    """

    def __init__(self, topic: str) -> None:
        self.topic: str = topic
        super().__init__(f"Not connected to MQTT server, cannot publish to '{topic}'")


class DuplicateAccessoryError(BridgeError):
    """An accessory with this UUID is already registered.

    Signals a broken caller contract (reconcile/restore must route existing
    UUIDs to an update). Not meant to be handled.

    Attributes:
        uuid: The duplicated accessory UUID

    """

    def __init__(self, uuid: str) -> None:
        self.uuid: str = uuid
        super().__init__(f"Accessory already registered: {uuid}")


class HostUnregistrationError(BridgeError):
    """The host rejected an accessory unregistration.

    Attributes:
        uuids: UUIDs of the accessories in the failed call
        reason: Host-provided failure reason

    """

    def __init__(self, uuids: list[str], reason: str) -> None:
        self.uuids: list[str] = uuids
        self.reason: str = reason
        super().__init__(f"Failed to unregister {len(uuids)} accessory(ies): {reason}")
