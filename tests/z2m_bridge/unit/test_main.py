"""Unit tests for main.py module.

Tests CLI parsing and the BridgeService startup and shutdown flows.
"""
# pyright: reportUnknownMemberType=false

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from conftest import make_device

from z2m_bridge.host import StandaloneHost
from z2m_bridge.main import BridgeService, check_python_version, parse_cli

KITCHEN = make_device("0x000000000000000A", "kitchen")
GARAGE = make_device("0x000000000000000C", "garage_door")


class TestParseCli:
    """Tests for parse_cli."""

    def test_paths(self, tmp_path: Path):
        args = parse_cli(["--config", str(tmp_path / "cfg.yaml"), "--cache", str(tmp_path / "cache.yaml")])

        assert args.config == tmp_path / "cfg.yaml"
        assert args.cache == tmp_path / "cache.yaml"
        assert args.debug is False

    def test_debug_flag_raises_package_log_level(self):
        with patch("z2m_bridge.main.set_package_level") as mock_set_level:
            args = parse_cli(["-D"])

        assert args.debug is True
        mock_set_level.assert_called_once_with(logging.DEBUG)

    def test_env_file_is_loaded(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        _ = env_file.write_text("Z2M_MQTT_SERVER=mqtt://from-env:1883\n", encoding="utf-8")

        with patch("z2m_bridge.main.dotenv.load_dotenv", return_value=True) as mock_load:
            _ = parse_cli(["--env", str(env_file)])

        mock_load.assert_called_once_with(env_file.resolve(), override=True)

    def test_missing_env_file_is_not_loaded(self, tmp_path: Path):
        with patch("z2m_bridge.main.dotenv.load_dotenv") as mock_load:
            _ = parse_cli(["--env", str(tmp_path / "missing.env")])

        mock_load.assert_not_called()


def test_check_python_version():
    check_python_version()

    with patch("z2m_bridge.main.MIN_PY_VERSION", (99, 0)), pytest.raises(RuntimeError, match="99.0"):
        check_python_version()


class TestBridgeService:
    """Tests for BridgeService."""

    @pytest.fixture
    def config_file(self, tmp_path: Path) -> Path:
        config_file = tmp_path / "z2m_bridge.yaml"
        _ = config_file.write_text(
            yaml.safe_dump({"mqtt": {"server": "mqtt://broker.local"}, "devices": {"exclude": ["garage_door"]}}),
            encoding="utf-8",
        )
        return config_file

    @pytest.fixture
    def cache_file(self, tmp_path: Path) -> Path:
        cache_file = tmp_path / "accessories.yaml"
        seed = StandaloneHost()
        entries = [
            {
                "display_name": str(device["friendly_name"]),
                "uuid": seed.uuid_from_identifier(str(device["ieeeAddr"]).lower()),
                "context": {"device": device},
            }
            for device in (KITCHEN, GARAGE)
        ]
        _ = cache_file.write_text(yaml.safe_dump(entries), encoding="utf-8")
        return cache_file

    @pytest.mark.asyncio
    async def test_setup_restores_cache_and_drops_excluded(self, config_file: Path, cache_file: Path):
        service = BridgeService(config_file, cache_file)

        platform = service.setup()
        await asyncio.sleep(0)

        assert [record.display_name for record in platform.registry] == ["kitchen"]
        assert platform.base_topic == "zigbee2mqtt"
        cached = yaml.safe_load(cache_file.read_text(encoding="utf-8"))
        assert [entry["display_name"] for entry in cached] == ["kitchen"]

    @pytest.mark.asyncio
    async def test_stop_stops_platform(self, config_file: Path):
        service = BridgeService(config_file)
        platform = service.setup()

        with patch.object(platform, "stop", AsyncMock()) as mock_stop:
            await service.stop()

        mock_stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_before_setup(self, config_file: Path):
        await BridgeService(config_file).stop()

    @pytest.mark.asyncio
    async def test_signal_handler_schedules_stop(self, config_file: Path):
        service = BridgeService(config_file)
        service.stop = AsyncMock()

        service.signal_handler(15)
        await asyncio.sleep(0)

        service.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_returns_when_mqtt_task_is_cancelled(self, config_file: Path):
        service = BridgeService(config_file)

        async def never_connects() -> None:
            await asyncio.Event().wait()

        mqtt_task = asyncio.create_task(never_connects())
        _ = mqtt_task.cancel()
        loop = asyncio.get_running_loop()
        with (
            patch.object(loop, "add_signal_handler") as mock_add_handler,
            patch(
                "z2m_bridge.main.Zigbee2mqttPlatform.did_finish_launching",
                new_callable=AsyncMock,
                return_value=mqtt_task,
            ) as mock_launch,
        ):
            await service.start()

        assert mock_add_handler.call_count == 2
        mock_launch.assert_awaited_once()
        assert service.platform is not None
