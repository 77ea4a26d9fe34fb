# src/logging/logger.py — v1
"""Log formatters and one-call setup for the assetforge logger tree.

Every module logs through `logging.getLogger(__name__)`; records inherit
the pipeline context (pipeline id, asset id, stage, variant) of the task that
emitted them.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from assetforge.logging.context import get_context
from assetforge.logging.handlers import create_console_handler, create_rotating_handler

if TYPE_CHECKING:
    from assetforge.config.settings import Settings

ROOT_LOGGER = "assetforge"

# SDK loggers that log every HTTP request at INFO; kept at WARNING unless debugging.
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "anthropic")

_CONTEXT_FIELDS = ("pipeline_id", "asset_id", "stage", "variant")


def _record_context(record: logging.LogRecord) -> dict[str, str]:
    """Context stamped by ContextFilter, else the live context variables."""
    if hasattr(record, "pipeline_id"):
        values = {name: getattr(record, name, None) for name in _CONTEXT_FIELDS}
    else:
        values = get_context().as_dict()
    return {k: v for k, v in values.items() if v is not None}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context keys sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_record_context(record))

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single-line format for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = _record_context(record)
        parts = [
            datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if "pipeline_id" in ctx:
            parts.append(f"[{ctx['pipeline_id']}]")
        if "asset_id" in ctx:
            parts.append(f"<{ctx['asset_id']}>")
        if "stage" in ctx:
            stage = ctx["stage"]
            if "variant" in ctx:
                stage = f"{stage}:{ctx['variant']}"
            parts.append(f"({stage})")
        parts.append(f"- {record.getMessage()}")
        text = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            text += "\n" + self.formatException(record.exc_info)
        return text


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """Configure the assetforge logger and return it.

    Safe to call repeatedly; previous handlers are replaced.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Optional rotating log file in addition to stdout.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(numeric)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = [create_console_handler()]
    if log_file:
        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    sdk_level = logging.DEBUG if numeric <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    return root


def setup_logging_from_settings(settings: Settings) -> logging.Logger:
    """Apply the log_* fields of a Settings instance."""
    return setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
