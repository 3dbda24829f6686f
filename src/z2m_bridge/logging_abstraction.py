"""Logging layer for the Zigbee2MQTT bridge.

Every module logger sits below the ``z2m_bridge`` package logger, which owns
the output handlers: JSON lines for machine consumption and/or a console
format for humans. Both render the correlation ID of the message being
processed and any structured context passed as ``extra=``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from z2m_bridge.const import (
    Z2M_DEBUG,
    Z2M_LOG_FORMAT,
    Z2M_LOG_HUMAN_OUTPUT,
    Z2M_LOG_JSON_FILE,
    Z2M_LOG_NAME,
)
from z2m_bridge.correlation import get_correlation_id

__all__ = [
    "BridgeLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
    "set_package_level",
]

# LogRecord attribute carrying the ``extra=`` mapping of a BridgeLogger call
CONTEXT_ATTR = "extra_data"
_NO_CORRELATION = "--------"
_configured = False


def _record_context(record: logging.LogRecord) -> dict[str, object]:
    context = getattr(record, CONTEXT_ATTR, None)
    return dict(context) if isinstance(context, Mapping) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; structured context nests under ``context``."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "where": f"{record.module}:{record.lineno}",
            "correlation_id": get_correlation_id(),
            "message": record.getMessage(),
        }
        context = _record_context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time LEVEL [module:line] [corr-id] > message | key=value | ...``"""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(short_corr_id)s] > %(message)s",
            "%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.short_corr_id = correlation_id[:8] if correlation_id else _NO_CORRELATION
        line = super().format(record)
        context = _record_context(record)
        if not context:
            return line
        return " | ".join([line, *(f"{key}={value}" for key, value in context.items())])


def _open_handler(target: str) -> logging.Handler:
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(target).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _build_handlers(log_format: str, json_file: str | Path | None, human_output: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if log_format in ("json", "both") and json_file:
        try:
            json_handler = _open_handler(str(json_file))
        except OSError as e:
            print(f"Warning: JSON log output {json_file} unavailable: {e}", file=sys.stderr)
        else:
            json_handler.setFormatter(JSONFormatter())
            handlers.append(json_handler)

    if log_format in ("human", "both"):
        try:
            human_handler = _open_handler(human_output)
        except OSError as e:
            print(f"Warning: human log output {human_output} unavailable, using stdout: {e}", file=sys.stderr)
            human_handler = logging.StreamHandler(sys.stdout)
        human_handler.setFormatter(HumanReadableFormatter())
        handlers.append(human_handler)
    return handlers


def configure_logging(
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> logging.Logger:
    """Attach output handlers to the package logger once and return it.

    Args:
        log_format: "json", "human" or "both" (default: ``Z2M_LOG_FORMAT``)
        json_file: Target of the JSON lines; JSON output is off without one
        human_output: "stdout", "stderr" or a file path for the console format

    """
    global _configured
    package_logger = logging.getLogger(Z2M_LOG_NAME)
    if _configured:
        return package_logger
    _configured = True

    level = logging.DEBUG if Z2M_DEBUG else logging.INFO
    package_logger.setLevel(level)
    for handler in _build_handlers(
        log_format or Z2M_LOG_FORMAT,
        json_file or Z2M_LOG_JSON_FILE,
        human_output or Z2M_LOG_HUMAN_OUTPUT,
    ):
        handler.setLevel(level)
        package_logger.addHandler(handler)
    return package_logger


class BridgeLogger:
    """Module logger whose calls accept structured context via ``extra=``."""

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        msg: str,
        *args: object,
        extra: Mapping[str, object] | None = None,
        exc_info: bool = False,
    ) -> None:
        # stacklevel 3: report the caller of debug()/info()/..., not this wrapper
        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra={CONTEXT_ATTR: dict(extra)} if extra else None,
            stacklevel=3,
        )

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """ERROR with the traceback of the exception being handled."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)


def get_logger(name: str) -> BridgeLogger:
    """BridgeLogger for ``name``, nested below the package logger if it is not already."""
    _ = configure_logging()
    if name != Z2M_LOG_NAME and not name.startswith(f"{Z2M_LOG_NAME}."):
        name = f"{Z2M_LOG_NAME}.{name}"
    return BridgeLogger(name)


def set_package_level(level: int) -> None:
    """Apply ``level`` to the package logger and its handlers."""
    package_logger = configure_logging()
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)
