"""Shared fixtures for unit tests.

This module provides reusable devices, hosts and MQTT mocks for testing the
Zigbee2MQTT bridge components.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from z2m_bridge.bridge_platform import Zigbee2mqttPlatform
from z2m_bridge.config import DevicesConfig, MqttConfig, PlatformConfig
from z2m_bridge.const import MQTT_ENV_OVERRIDES
from z2m_bridge.host import PlatformAccessory, StandaloneHost

JSONDict = dict[str, object]

BASE_TOPIC = "zigbee2mqtt"
COORDINATOR: JSONDict = {"ieeeAddr": "0x00124b0000000000", "friendly_name": "Coordinator", "type": "Coordinator"}


def make_device(ieee_address: str, friendly_name: str, device_type: str = "EndDevice", **extra: object) -> JSONDict:
    """Build a device entry the way Zigbee2MQTT lists it."""
    return {"ieeeAddr": ieee_address, "friendly_name": friendly_name, "type": device_type, **extra}


def device_list_payload(*devices: JSONDict) -> bytes:
    return json.dumps(list(devices)).encode()


@pytest.fixture(autouse=True)
def clear_mqtt_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep Z2M_MQTT_* variables from the developer's shell out of config parsing."""
    for env_name in MQTT_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_name, raising=False)
    yield


@pytest.fixture
def device_factory() -> Callable[..., JSONDict]:
    return make_device


@pytest.fixture
def host() -> StandaloneHost:
    """Real in-process host without a cache file."""
    return StandaloneHost()


@pytest.fixture
def mock_host() -> MagicMock:
    """Mock accessory host.

    UUIDs are derived as ``uuid-<identifier>`` and new handles are real
    PlatformAccessory objects so characteristic updates can be inspected.
    """
    mock: MagicMock = MagicMock()
    mock.uuid_from_identifier = MagicMock(side_effect=lambda identifier: f"uuid-{identifier}")
    mock.platform_accessory = MagicMock(
        side_effect=lambda display_name, accessory_uuid: PlatformAccessory(display_name, accessory_uuid),
    )
    mock.register_accessories = MagicMock()
    mock.update_accessories = MagicMock()
    mock.unregister_accessories = MagicMock()
    return mock


@pytest.fixture
def mock_transport() -> MagicMock:
    """Connected MQTT transport with an awaitable publish."""
    transport: MagicMock = MagicMock()
    transport.is_connected = True
    transport.publish = AsyncMock()
    return transport


@pytest.fixture
def mock_mqtt_client(mock_transport: MagicMock) -> MagicMock:
    """Mock MQTTClient for the platform: transport surface plus lifecycle methods."""
    mock_transport.start = AsyncMock()
    mock_transport.stop = AsyncMock()
    mock_transport.start_task = None
    return mock_transport


@pytest.fixture
def platform_config() -> PlatformConfig:
    return PlatformConfig(
        mqtt=MqttConfig(server="mqtt://localhost:1883", base_topic=BASE_TOPIC),
        devices=DevicesConfig(exclude=["Excluded_Plug", "0xDEADBEEF00000000"]),
    )


@pytest.fixture
def platform(
    platform_config: PlatformConfig,
    mock_host: MagicMock,
    mock_mqtt_client: MagicMock,
) -> Zigbee2mqttPlatform:
    return Zigbee2mqttPlatform(platform_config, mock_host, mqtt_client=mock_mqtt_client)
