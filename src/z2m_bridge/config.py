"""Bridge configuration: YAML file plus ``Z2M_*`` environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from z2m_bridge.const import MQTT_ENV_OVERRIDES
from z2m_bridge.logging_abstraction import get_logger

logger = get_logger(__name__)

DEFAULT_MQTT_SERVER = "mqtt://localhost:1883"
DEFAULT_BASE_TOPIC = "zigbee2mqtt"


class MqttConfig(BaseModel):
    """Connection settings for the MQTT broker the bridge publishes to."""

    server: str | None = None
    base_topic: str | None = None
    user: str | None = None
    password: str | None = None
    ca: str | None = None
    key: str | None = None
    cert: str | None = None
    keepalive: int | None = None
    client_id: str | None = None
    version: int | None = None
    reject_unauthorized: bool = True


class DevicesConfig(BaseModel):
    exclude: list[str] = Field(default_factory=list)


class PlatformConfig(BaseModel):
    mqtt: MqttConfig = Field(default_factory=MqttConfig)
    devices: DevicesConfig = Field(default_factory=DevicesConfig)

    @property
    def base_topic(self) -> str:
        return self.mqtt.base_topic or DEFAULT_BASE_TOPIC


def _apply_env(raw: dict[str, Any]) -> dict[str, Any]:
    mqtt: dict[str, Any] = dict(raw.get("mqtt") or {})
    for key, env_name in MQTT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            mqtt[key] = value
    return {**raw, "mqtt": mqtt}


def parse_config(raw: dict[str, Any] | None) -> PlatformConfig:
    """Validate a config mapping, falling back to defaults for server and base topic."""
    lp = "config:parse:"
    config = PlatformConfig.model_validate(_apply_env(raw or {}))
    if not config.mqtt.server or not config.mqtt.base_topic:
        logger.error("%s No MQTT server and/or base_topic defined!", lp)
        config.mqtt.server = config.mqtt.server or DEFAULT_MQTT_SERVER
        config.mqtt.base_topic = config.mqtt.base_topic or DEFAULT_BASE_TOPIC
    return config


def load_config(path: str | Path | None) -> PlatformConfig:
    """Load the YAML config file; a missing file means an all-defaults config.

    Raises:
        yaml.YAMLError: The file is not valid YAML
        pydantic.ValidationError: The file does not match the config schema

    """
    lp = "config:load:"
    raw: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            with config_path.open(encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            logger.debug("%s Loaded config file: %s", lp, config_path)
        else:
            logger.warning("%s Config file not found: %s, using defaults", lp, config_path)
    return parse_config(raw)
