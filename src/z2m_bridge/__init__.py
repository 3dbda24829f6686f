"""Zigbee2MQTT accessory bridge.

Keeps a registry of host accessories in sync with the devices reported by a
Zigbee2MQTT bridge and routes per-device state and commands over MQTT.
"""

__version__ = "0.1.0"
