"""MQTT transport and command publishing for the Zigbee2MQTT bridge.

- client.py: aiomqtt connection lifecycle and the inbound message loop
- publisher.py: outbound commands below the base topic
"""

from .client import MQTTClient
from .publisher import CommandPublisher

__all__ = [
    "CommandPublisher",
    "MQTTClient",
]
