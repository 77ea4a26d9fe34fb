# src/logging/context.py — v2
"""Contextual logging support: tag records with the pipeline, asset, stage
and material variant being worked on.

Each pipeline runs in its own asyncio task, which copies the current context
on creation, so values set inside one pipeline never leak into another.
Stage and variant scopes restore the previous value on exit, which keeps
nested scopes and early returns consistent.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

_pipeline_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "pipeline_id", default=None
)
_asset_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "asset_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
# Variant directory id (asset-preset) while a retexture job is in flight
_variant: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "variant", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of the current logging context."""

    pipeline_id: str | None = None
    asset_id: str | None = None
    stage: str | None = None
    variant: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields, for injection into structured log entries."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        pipeline_id=_pipeline_id.get(),
        asset_id=_asset_id.get(),
        stage=_stage.get(),
        variant=_variant.get(),
    )


def set_pipeline_context(pipeline_id: str, asset_id: str) -> None:
    """Bind a run to the current task (called once at the start of a run)."""
    _pipeline_id.set(pipeline_id)
    _asset_id.set(asset_id)


@contextmanager
def stage_context(stage: str) -> Iterator[None]:
    """Tag records emitted inside the block with `stage`.

    Any variant left over from a previous stage is cleared for the block.
    """
    stage_token = _stage.set(stage)
    variant_token = _variant.set(None)
    try:
        yield
    finally:
        _variant.reset(variant_token)
        _stage.reset(stage_token)


@contextmanager
def variant_context(variant: str) -> Iterator[None]:
    """Tag records emitted inside the block with a material variant id."""
    token = _variant.set(variant)
    try:
        yield
    finally:
        _variant.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    for var in (_pipeline_id, _asset_id, _stage, _variant):
        var.set(None)
