# src/logging/handlers.py — v1
"""Handlers and filters attached to the assetforge logger."""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO

from assetforge.logging.context import get_context

_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str | int) -> int:
    """Parse a size like '10MB' or '512 kb' into bytes. Integers pass through."""
    if isinstance(size, int):
        if size < 0:
            raise ValueError(f"Invalid size: {size}")
        return size
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB)$", size.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]


class ContextFilter(logging.Filter):
    """Copy the current pipeline context onto each record.

    Formatters then read `record.pipeline_id`, `record.asset_id`,
    `record.stage` and `record.variant`, which also makes them usable in
    %-style format strings.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        record.pipeline_id = ctx.pipeline_id
        record.asset_id = ctx.asset_id
        record.stage = ctx.stage
        record.variant = ctx.variant
        return True


def create_console_handler(stream: IO[str] | None = None) -> logging.StreamHandler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.addFilter(ContextFilter())
    return handler


def create_rotating_handler(
    log_file: str | Path,
    rotation: str | int = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Size-rotated file handler with the context filter attached.

    Args:
        log_file: Path to log file; parent directories are created.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
    handler.addFilter(ContextFilter())
    return handler
