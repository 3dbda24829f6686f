"""Topic classification for inbound Zigbee2MQTT messages.

Two topic shapes below the base topic are acted on:

    <base>/bridge/config/devices   JSON array with the full device list
    <base>/<friendly_name>         JSON object with one device's state

Everything else is ignored. Payload decoding problems come back as a
``MalformedPayload`` outcome so the caller can log and move on.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from z2m_bridge.const import DEVICES_TOPIC
from z2m_bridge.exceptions import MalformedPayloadError
from z2m_bridge.structs import (
    ClassifiedMessage,
    DeviceRecord,
    FullListUpdate,
    Ignored,
    MalformedPayload,
    StateUpdate,
)

_device_list_adapter: TypeAdapter[list[DeviceRecord]] = TypeAdapter(list[DeviceRecord])


def _decode_json(topic: str, payload: bytes | str) -> Any:
    try:
        text = payload.decode() if isinstance(payload, bytes) else payload
        return json.loads(text)
    except UnicodeDecodeError as exc:
        raise MalformedPayloadError(topic, f"payload is not UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(topic, f"invalid JSON: {exc}") from exc


def decode_device_list(topic: str, payload: bytes | str) -> list[DeviceRecord]:
    """Decode a full device list; any bad entry rejects the whole list."""
    data = _decode_json(topic, payload)
    if not isinstance(data, list):
        raise MalformedPayloadError(topic, f"expected a JSON array, got {type(data).__name__}")
    try:
        return _device_list_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedPayloadError(topic, f"invalid device entry: {exc.error_count()} error(s)") from exc


def decode_state(topic: str, payload: bytes | str) -> dict[str, Any]:
    data = _decode_json(topic, payload)
    if not isinstance(data, dict):
        raise MalformedPayloadError(topic, f"expected a JSON object, got {type(data).__name__}")
    return data


def classify(topic: str, base_path: str, payload: bytes | str) -> ClassifiedMessage:
    prefix = f"{base_path}/"
    if not topic.startswith(prefix):
        return Ignored(topic, "outside base topic")

    rest = topic[len(prefix) :]
    try:
        if rest == DEVICES_TOPIC:
            return FullListUpdate(decode_device_list(topic, payload))
        if rest and "/" not in rest:
            return StateUpdate(rest, decode_state(topic, payload))
    except MalformedPayloadError as exc:
        return MalformedPayload(topic, exc.reason)
    return Ignored(topic, "unhandled topic")
