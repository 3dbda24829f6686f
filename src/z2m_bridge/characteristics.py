"""Mapping from Zigbee2MQTT state fields to accessory characteristics.

A lookup table keyed by payload field. The registry and reconciler never see
device types; only this module does.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from z2m_bridge.const import Z2M_LOW_BATTERY_THRESHOLD


class DeviceCategory(StrEnum):
    CLIMATE = "climate"
    CONTACT = "contact"
    OCCUPANCY = "occupancy"
    LEAK = "leak"
    LIGHT_SENSOR = "light_sensor"
    BATTERY = "battery"
    SWITCH = "switch"
    LIGHT = "light"


@dataclass(frozen=True, slots=True)
class CustomCharacteristic:
    name: str
    uuid: str
    format: str
    min_value: int
    max_value: int
    min_step: int


@dataclass(frozen=True, slots=True)
class CustomService:
    name: str
    uuid: str
    characteristics: tuple[CustomCharacteristic, ...]


# Elgato Eve air pressure service, understood by the Eve app
AIR_PRESSURE = CustomCharacteristic(
    name="AirPressure",
    uuid="E863F10F-079E-48FF-8F27-9C2605A29F52",
    format="uint16",
    min_value=700,
    max_value=1100,
    min_step=1,
)
AIR_PRESSURE_SENSOR = CustomService(
    name="AirPressureSensor",
    uuid="E863F00A-079E-48FF-8F27-9C2605A29F52",
    characteristics=(AIR_PRESSURE,),
)
CUSTOM_SERVICES: dict[str, CustomService] = {AIR_PRESSURE_SENSOR.name: AIR_PRESSURE_SENSOR}


@dataclass(frozen=True, slots=True)
class CharacteristicMapping:
    category: DeviceCategory
    service: str
    characteristic: str
    convert: Callable[[Any], object]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _to_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"not a number: {value!r}"
        raise ValueError(msg)
    return float(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.upper() in ("ON", "OFF"):
        return value.upper() == "ON"
    msg = f"not a boolean: {value!r}"
    raise ValueError(msg)


def _air_pressure(value: Any) -> int:
    return int(round(_clamp(_to_float(value), AIR_PRESSURE.min_value, AIR_PRESSURE.max_value)))


def _contact_state(value: Any) -> int:
    # HomeKit: 0 = CONTACT_DETECTED, 1 = CONTACT_NOT_DETECTED
    return 0 if _to_bool(value) else 1


def _brightness_percent(value: Any) -> int:
    # Zigbee2MQTT reports 0..254
    return round(_clamp(_to_float(value), 0, 254) / 254 * 100)


def _low_battery(value: Any) -> int:
    return 1 if _to_float(value) < Z2M_LOW_BATTERY_THRESHOLD else 0


STATE_FIELD_MAP: dict[str, tuple[CharacteristicMapping, ...]] = {
    "temperature": (
        CharacteristicMapping(DeviceCategory.CLIMATE, "TemperatureSensor", "CurrentTemperature", _to_float),
    ),
    "humidity": (
        CharacteristicMapping(
            DeviceCategory.CLIMATE,
            "HumiditySensor",
            "CurrentRelativeHumidity",
            lambda v: _clamp(_to_float(v), 0, 100),
        ),
    ),
    "pressure": (
        CharacteristicMapping(DeviceCategory.CLIMATE, AIR_PRESSURE_SENSOR.name, AIR_PRESSURE.name, _air_pressure),
    ),
    "contact": (CharacteristicMapping(DeviceCategory.CONTACT, "ContactSensor", "ContactSensorState", _contact_state),),
    "occupancy": (
        CharacteristicMapping(
            DeviceCategory.OCCUPANCY,
            "OccupancySensor",
            "OccupancyDetected",
            lambda v: int(_to_bool(v)),
        ),
    ),
    "water_leak": (
        CharacteristicMapping(DeviceCategory.LEAK, "LeakSensor", "LeakDetected", lambda v: int(_to_bool(v))),
    ),
    "illuminance_lux": (
        CharacteristicMapping(
            DeviceCategory.LIGHT_SENSOR,
            "LightSensor",
            "CurrentAmbientLightLevel",
            lambda v: max(0.0001, _to_float(v)),
        ),
    ),
    "battery": (
        CharacteristicMapping(DeviceCategory.BATTERY, "Battery", "BatteryLevel", lambda v: int(_clamp(_to_float(v), 0, 100))),
        CharacteristicMapping(DeviceCategory.BATTERY, "Battery", "StatusLowBattery", _low_battery),
    ),
    "state": (CharacteristicMapping(DeviceCategory.SWITCH, "Switch", "On", _to_bool),),
    "brightness": (CharacteristicMapping(DeviceCategory.LIGHT, "Lightbulb", "Brightness", _brightness_percent),),
}

# a dimmable device reports its on/off state on the Lightbulb service instead
LIGHT_STATE = CharacteristicMapping(DeviceCategory.LIGHT, "Lightbulb", "On", _to_bool)


def categorize(state: Mapping[str, Any]) -> set[DeviceCategory]:
    categories = {mapping.category for field in state for mapping in STATE_FIELD_MAP.get(field, ())}
    if DeviceCategory.LIGHT in categories:
        categories.discard(DeviceCategory.SWITCH)
    return categories


def map_state(state: Mapping[str, Any]) -> tuple[list[tuple[CharacteristicMapping, object]], dict[str, str]]:
    """Translate a state payload into characteristic values.

    Returns:
        Tuple of (list of (mapping, value) to apply, {field: error} for
        fields whose value could not be converted). Unknown fields are
        left out of both.

    """
    is_light = "brightness" in state
    values: list[tuple[CharacteristicMapping, object]] = []
    errors: dict[str, str] = {}
    for field, raw in state.items():
        mappings = STATE_FIELD_MAP.get(field, ())
        if field == "state" and is_light:
            mappings = (LIGHT_STATE,)
        for mapping in mappings:
            try:
                values.append((mapping, mapping.convert(raw)))
            except ValueError as exc:
                errors[field] = str(exc)
    return values, errors
