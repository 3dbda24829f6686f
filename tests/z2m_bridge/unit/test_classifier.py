"""Unit tests for inbound topic classification."""

from __future__ import annotations

import json

import pytest
from conftest import BASE_TOPIC, COORDINATOR, device_list_payload, make_device

from z2m_bridge.classifier import classify, decode_device_list, decode_state
from z2m_bridge.exceptions import MalformedPayloadError
from z2m_bridge.structs import FullListUpdate, Ignored, MalformedPayload, StateUpdate

DEVICES = f"{BASE_TOPIC}/bridge/config/devices"


class TestClassifyDeviceList:
    """Tests for the full device list topic."""

    def test_device_list_is_full_list_update(self):
        payload = device_list_payload(COORDINATOR, make_device("0x01", "kitchen", model="WSDCGQ11LM"))

        message = classify(DEVICES, BASE_TOPIC, payload)

        assert isinstance(message, FullListUpdate)
        assert [device.ieee_address for device in message.devices] == [COORDINATOR["ieeeAddr"], "0x01"]
        assert message.devices[0].is_coordinator is True
        # unknown fields are kept for persistence
        assert message.devices[1].to_context()["model"] == "WSDCGQ11LM"

    def test_empty_device_list(self):
        message = classify(DEVICES, BASE_TOPIC, b"[]")

        assert message == FullListUpdate([])

    def test_entry_without_ieee_address_rejects_whole_list(self):
        payload = device_list_payload(make_device("0x01", "kitchen"), {"friendly_name": "broken"})

        message = classify(DEVICES, BASE_TOPIC, payload)

        assert isinstance(message, MalformedPayload)
        assert message.topic == DEVICES

    def test_device_list_that_is_not_an_array(self):
        message = classify(DEVICES, BASE_TOPIC, b'{"ieeeAddr": "0x01"}')

        assert isinstance(message, MalformedPayload)
        assert "JSON array" in message.reason

    def test_invalid_json(self):
        message = classify(DEVICES, BASE_TOPIC, b"[{")

        assert isinstance(message, MalformedPayload)
        assert "invalid JSON" in message.reason

    def test_invalid_utf8(self):
        message = classify(DEVICES, BASE_TOPIC, b"\xff\xfe")

        assert isinstance(message, MalformedPayload)
        assert "UTF-8" in message.reason


class TestClassifyStateUpdate:
    """Tests for per-device state topics."""

    def test_state_object(self):
        message = classify(f"{BASE_TOPIC}/kitchen", BASE_TOPIC, json.dumps({"temperature": 21.5}))

        assert message == StateUpdate("kitchen", {"temperature": 21.5})

    def test_state_that_is_not_an_object(self):
        message = classify(f"{BASE_TOPIC}/kitchen", BASE_TOPIC, b"online")

        assert isinstance(message, MalformedPayload)


class TestClassifyIgnored:
    """Tests for topics the bridge does not act on."""

    @pytest.mark.parametrize(
        "topic",
        [
            "other/kitchen",
            "zigbee2mqttx/kitchen",
            BASE_TOPIC,
        ],
    )
    def test_outside_base_topic(self, topic: str):
        message = classify(topic, BASE_TOPIC, b"{}")

        assert message == Ignored(topic, "outside base topic")

    @pytest.mark.parametrize(
        "topic",
        [
            f"{BASE_TOPIC}/bridge/state",
            f"{BASE_TOPIC}/kitchen/set",
            f"{BASE_TOPIC}/bridge/config/devices/get",
            f"{BASE_TOPIC}/",
        ],
    )
    def test_unhandled_topic_below_base(self, topic: str):
        message = classify(topic, BASE_TOPIC, b"{}")

        assert message == Ignored(topic, "unhandled topic")


class TestDecoders:
    """Tests for the payload decoders used by classify."""

    def test_decode_device_list_accepts_str(self):
        devices = decode_device_list(DEVICES, json.dumps([make_device("0x01", "kitchen")]))

        assert devices[0].friendly_name == "kitchen"

    def test_decode_state_raises_with_topic(self):
        with pytest.raises(MalformedPayloadError) as exc_info:
            _ = decode_state("zigbee2mqtt/kitchen", b"[1, 2]")

        assert exc_info.value.topic == "zigbee2mqtt/kitchen"
        assert "JSON object" in exc_info.value.reason
