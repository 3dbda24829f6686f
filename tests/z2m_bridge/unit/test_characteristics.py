"""Unit tests for the state field to characteristic mapping."""

from __future__ import annotations

import pytest

from z2m_bridge.characteristics import (
    AIR_PRESSURE,
    AIR_PRESSURE_SENSOR,
    CUSTOM_SERVICES,
    DeviceCategory,
    categorize,
    map_state,
)


def _values(state: dict[str, object]) -> dict[tuple[str, str], object]:
    values, _errors = map_state(state)
    return {(mapping.service, mapping.characteristic): value for mapping, value in values}


class TestMapState:
    """Tests for map_state conversions."""

    def test_climate_fields(self):
        values = _values({"temperature": 21.5, "humidity": 104, "pressure": 1013.4})

        assert values == {
            ("TemperatureSensor", "CurrentTemperature"): 21.5,
            ("HumiditySensor", "CurrentRelativeHumidity"): 100,
            ("AirPressureSensor", "AirPressure"): 1013,
        }

    @pytest.mark.parametrize(("raw", "expected"), [(650, 700), (1250, 1100), (980.6, 981)])
    def test_air_pressure_is_clamped_to_characteristic_range(self, raw: float, expected: int):
        assert _values({"pressure": raw})[("AirPressureSensor", "AirPressure")] == expected

    def test_contact_closed_is_contact_detected(self):
        assert _values({"contact": True})[("ContactSensor", "ContactSensorState")] == 0
        assert _values({"contact": False})[("ContactSensor", "ContactSensorState")] == 1

    def test_battery_sets_level_and_low_battery(self):
        values = _values({"battery": 5})

        assert values[("Battery", "BatteryLevel")] == 5
        assert values[("Battery", "StatusLowBattery")] == 1
        assert _values({"battery": 90})[("Battery", "StatusLowBattery")] == 0

    def test_switch_state(self):
        assert _values({"state": "ON"}) == {("Switch", "On"): True}
        assert _values({"state": "off"}) == {("Switch", "On"): False}

    def test_dimmable_light_uses_lightbulb_service(self):
        values = _values({"state": "ON", "brightness": 254})

        assert values == {("Lightbulb", "On"): True, ("Lightbulb", "Brightness"): 100}

    def test_unknown_fields_are_skipped(self):
        values, errors = map_state({"linkquality": 120, "last_seen": "2024-01-01"})

        assert values == []
        assert errors == {}

    def test_unconvertible_values_are_reported_per_field(self):
        values, errors = map_state({"temperature": "warm", "occupancy": True, "battery": True})

        assert [(mapping.characteristic, value) for mapping, value in values] == [("OccupancyDetected", 1)]
        assert set(errors) == {"temperature", "battery"}


class TestCategorize:
    """Tests for categorize."""

    def test_sensor_categories(self):
        state = {"temperature": 20, "contact": True, "battery": 80, "linkquality": 50}

        assert categorize(state) == {DeviceCategory.CLIMATE, DeviceCategory.CONTACT, DeviceCategory.BATTERY}

    def test_light_wins_over_switch(self):
        assert categorize({"state": "ON", "brightness": 10}) == {DeviceCategory.LIGHT}
        assert categorize({"state": "ON"}) == {DeviceCategory.SWITCH}


class TestCustomServices:
    """Tests for the Eve air pressure service definition."""

    def test_air_pressure_service(self):
        assert CUSTOM_SERVICES["AirPressureSensor"] is AIR_PRESSURE_SENSOR
        assert AIR_PRESSURE_SENSOR.uuid == "E863F00A-079E-48FF-8F27-9C2605A29F52"
        assert AIR_PRESSURE_SENSOR.characteristics == (AIR_PRESSURE,)
        assert AIR_PRESSURE.uuid == "E863F10F-079E-48FF-8F27-9C2605A29F52"
        assert (AIR_PRESSURE.format, AIR_PRESSURE.min_value, AIR_PRESSURE.max_value) == ("uint16", 700, 1100)
