"""Root logger setup for the controller (JSON lines or key=value text)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import LoggingConfig

# Attributes passed through ``extra=`` that are rendered by both formatters
_EXTRA_FIELDS = (
    "instance_id", "public_ip", "tick", "elapsed_seconds",
    "total_instances", "pool_members", "eligible", "mutations",
)

_QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in _EXTRA_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))

        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Console format: the message followed by any extra fields as key=value."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = _extra_fields(record)
        if extras:
            line += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        return line


def configure_logging(config: LoggingConfig) -> None:
    """Replace the root handlers with a single stderr handler."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if config.format == "json" else TextFormatter())
    root.addHandler(handler)

    # The AWS SDK logs every request at DEBUG
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
