"""Main entrypoint and lifecycle management for the Zigbee2MQTT bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence
from functools import partial
from pathlib import Path

import dotenv
import uvloop

from z2m_bridge.bridge_platform import Zigbee2mqttPlatform
from z2m_bridge.config import load_config
from z2m_bridge.const import (
    YES_ANSWER,
    Z2M_BRIDGE_VERSION,
    Z2M_CACHE_FILE_PATH,
    Z2M_CONFIG_FILE_PATH,
    Z2M_DEBUG,
)
from z2m_bridge.correlation import correlation_context
from z2m_bridge.host import StandaloneHost
from z2m_bridge.logging_abstraction import get_logger, set_package_level

logger = get_logger(__name__)

MIN_PY_VERSION = (3, 12)


class BridgeService:
    """Runs one platform against a standalone host until signalled to stop."""

    lp: str = "service:"

    def __init__(self, config_file: Path, cache_file: Path | None = None) -> None:
        self.config_file: Path = config_file
        self.cache_file: Path | None = cache_file
        self.platform: Zigbee2mqttPlatform | None = None

    def setup(self) -> Zigbee2mqttPlatform:
        """Load config and the accessory cache, and hand every cached accessory to the platform."""
        lp = f"{self.lp}setup:"
        config = load_config(self.config_file)
        host = StandaloneHost(self.cache_file)
        self.platform = platform = Zigbee2mqttPlatform(config, host)
        cached = host.load()
        for accessory in cached:
            platform.configure_accessory(accessory)
        logger.info(
            "%s Platform configured",
            lp,
            extra={"base_topic": platform.base_topic, "cached": len(cached), "restored": len(platform.registry)},
        )
        return platform

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, partial(self.signal_handler, signal.SIGINT))
        loop.add_signal_handler(signal.SIGTERM, partial(self.signal_handler, signal.SIGTERM))
        logger.debug("%s Signal handlers configured for SIGINT & SIGTERM", lp)

        platform = self.setup()
        # let unregistrations scheduled during restore run before the bus is consumed
        await asyncio.sleep(0)
        task = await platform.did_finish_launching()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("%s MQTT client task cancelled", lp)

    async def stop(self) -> None:
        logger.info("%s Shutting down Zigbee2MQTT bridge...", self.lp)
        if self.platform is not None:
            await self.platform.stop()

    def signal_handler(self, signum: int) -> None:
        logger.info("%s Intercepted signal: %s (%s)", self.lp, signal.Signals(signum).name, signum)
        _ = asyncio.get_running_loop().create_task(self.stop())


def check_python_version() -> None:
    """Ensure the running interpreter meets the minimum supported version."""
    if sys.version_info < MIN_PY_VERSION:
        version_message = (
            f"z2m-bridge requires Python {MIN_PY_VERSION[0]}.{MIN_PY_VERSION[1]} or newer; "
            f"detected {sys.version_info.major}.{sys.version_info.minor}"
        )
        raise RuntimeError(version_message)


def _load_env_file(env_file: Path) -> None:
    env_path = env_file.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return
    if dotenv.load_dotenv(env_path, override=True):
        logger.info("Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def parse_cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments, load the optional .env file and apply debug logging."""
    parser = argparse.ArgumentParser(description="Zigbee2MQTT accessory bridge")
    _ = parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path(Z2M_CONFIG_FILE_PATH),
        help="Path to the YAML config file",
    )
    _ = parser.add_argument(
        "--cache",
        type=Path,
        default=Path(Z2M_CACHE_FILE_PATH) if Z2M_CACHE_FILE_PATH else None,
        help="Path to the accessory cache file (no persistence when omitted)",
    )
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    args = parser.parse_args(argv)

    if args.env:
        _load_env_file(args.env)

    env_debug = os.environ.get("Z2M_DEBUG", "0").casefold() in YES_ANSWER
    if args.debug or Z2M_DEBUG or env_debug:
        set_package_level(logging.DEBUG)
        logger.info("Debug logging enabled")
    return args


def main(argv: Sequence[str] | None = None) -> None:
    """Run the Zigbee2MQTT bridge entry point."""
    with correlation_context():
        logger.info("Starting Zigbee2MQTT bridge", extra={"version": Z2M_BRIDGE_VERSION})
        args = parse_cli(argv)
        check_python_version()
        service = BridgeService(args.config.expanduser(), args.cache.expanduser() if args.cache else None)
        try:
            uvloop.run(service.start())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception:
            logger.exception("Fatal error in main loop")
            raise
        else:
            logger.info("Zigbee2MQTT bridge stopped gracefully")


if __name__ == "__main__":
    main()
