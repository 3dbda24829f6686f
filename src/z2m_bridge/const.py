import os

from z2m_bridge import __version__

__all__ = [
    "COORDINATOR_SENTINEL",
    "DEFAULT_PUBLISH_OPTIONS",
    "DEVICES_GET_TOPIC",
    "DEVICES_TOPIC",
    "MQTT_CLIENT_START_TASK_NAME",
    "MQTT_ENV_OVERRIDES",
    "PLATFORM_NAME",
    "PLUGIN_NAME",
    "YES_ANSWER",
    "Z2M_BRIDGE_VERSION",
    "Z2M_CACHE_FILE_PATH",
    "Z2M_CONFIG_FILE_PATH",
    "Z2M_DEBUG",
    "Z2M_LOG_FORMAT",
    "Z2M_LOG_HUMAN_OUTPUT",
    "Z2M_LOG_JSON_FILE",
    "Z2M_LOG_NAME",
    "Z2M_LOW_BATTERY_THRESHOLD",
    "Z2M_MQTT_CONN_DELAY",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
Z2M_LOG_NAME: str = "z2m_bridge"
Z2M_BRIDGE_VERSION: str = __version__

PLUGIN_NAME: str = "z2m-bridge"
PLATFORM_NAME: str = "zigbee2mqtt"

# Topics below are relative to the configured base topic
DEVICES_TOPIC: str = "bridge/config/devices"
DEVICES_GET_TOPIC: str = "bridge/config/devices/get"
COORDINATOR_SENTINEL: str = "Coordinator"
DEFAULT_PUBLISH_OPTIONS: dict[str, int | bool] = {"qos": 0, "retain": False}

# MQTT config key -> environment variable, read at parse time
MQTT_ENV_OVERRIDES: dict[str, str] = {
    "server": "Z2M_MQTT_SERVER",
    "base_topic": "Z2M_MQTT_BASE_TOPIC",
    "user": "Z2M_MQTT_USER",
    "password": "Z2M_MQTT_PASS",
}

_conn_delay = os.environ.get("Z2M_MQTT_CONN_DELAY", "10")
try:
    _conn_delay_value: int = int(_conn_delay) if _conn_delay else 10
except ValueError:
    _conn_delay_value = 10
Z2M_MQTT_CONN_DELAY: int = _conn_delay_value

Z2M_DEBUG = os.environ.get("Z2M_DEBUG", "0").casefold() in YES_ANSWER

Z2M_CONFIG_FILE_PATH: str = os.environ.get("Z2M_CONFIG_FILE_PATH", "/config/z2m_bridge.yaml")
_cache_path = os.environ.get("Z2M_CACHE_FILE_PATH")
Z2M_CACHE_FILE_PATH: str | None = _cache_path if _cache_path else None

_low_battery = os.environ.get("Z2M_LOW_BATTERY_THRESHOLD", "20")
Z2M_LOW_BATTERY_THRESHOLD: int = int(_low_battery) if _low_battery and _low_battery.isdigit() else 20

MQTT_CLIENT_START_TASK_NAME = "MQTTClient_START"

# Logging Configuration
Z2M_LOG_FORMAT: str = os.environ.get("Z2M_LOG_FORMAT", "human")  # "json", "human", or "both"
Z2M_LOG_JSON_FILE: str | None = os.environ.get("Z2M_LOG_JSON_FILE") or None
Z2M_LOG_HUMAN_OUTPUT: str = os.environ.get("Z2M_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path
