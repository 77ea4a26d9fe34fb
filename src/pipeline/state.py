# src/pipeline/state.py — v1
"""Mutable pipeline state owned by one orchestrator task.

The owning task is the only writer; status pollers read through
`snapshot()`, which returns a frozen deep copy.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from assetforge.core.models import (
    STAGE_ORDER,
    STAGE_RESULT_TYPES,
    TERMINAL_PIPELINE_STATUSES,
    FinalAsset,
    PipelineConfig,
    PipelineSnapshot,
    PipelineStatus,
    StageName,
    StageResult,
    StageState,
    StageStatus,
)

_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "skipped"}),
    "processing": frozenset({"completed", "failed", "skipped"}),
}


class StageTransitionError(Exception):
    """Raised on a stage status change outside the allowed transitions."""

    def __init__(self, stage: str, current: str, target: str):
        self.stage = stage
        self.current = current
        self.target = target
        super().__init__(f"Stage {stage}: cannot go from {current} to {target}")


def new_pipeline_id() -> str:
    """Identifier of the form pipeline-<epoch ms>-<9 hex chars>."""
    return f"pipeline-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def initial_stages(config: PipelineConfig) -> dict[str, StageState]:
    """Stages in execution order; optional stages whose flag is off start skipped."""
    enabled: dict[str, bool] = {
        "promptOptimization": config.use_gpt4_enhancement,
        "imageGeneration": True,
        "imageToThreeD": True,
        "textureGeneration": config.wants_variants,
        "rigging": config.wants_rigging,
        "vertexColorExtraction": config.enable_vertex_colors,
    }
    return {
        name: StageState(status="pending" if enabled[name] else "skipped")
        for name in STAGE_ORDER
    }


class PipelineState(BaseModel):
    """State of one pipeline run."""

    model_config = {"arbitrary_types_allowed": True}

    # === IDENTITY ===
    id: str = Field(default_factory=new_pipeline_id)
    config: PipelineConfig
    created_at: datetime = Field(default_factory=_now)

    # === PROGRESS ===
    status: PipelineStatus = "initializing"
    progress: int = 0
    stages: dict[str, StageState] = Field(default_factory=dict)
    results: dict[str, StageResult] = Field(default_factory=dict)

    # === OUTCOME ===
    error: str | None = None
    completed_at: datetime | None = None
    final_asset: FinalAsset | None = None

    cancel_event: asyncio.Event = Field(default_factory=asyncio.Event, exclude=True)

    @classmethod
    def create(cls, config: PipelineConfig, pipeline_id: str | None = None) -> PipelineState:
        state = cls(config=config, stages=initial_stages(config))
        if pipeline_id:
            state.id = pipeline_id
        return state

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PIPELINE_STATUSES

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def stage(self, name: StageName) -> StageState:
        return self.stages[name]

    # --- Stage transitions ---

    def _transition(self, name: StageName, target: StageStatus) -> StageState:
        stage = self.stages[name]
        if target not in _ALLOWED_TRANSITIONS.get(stage.status, frozenset()):
            raise StageTransitionError(name, stage.status, target)
        stage.status = target
        return stage

    def begin_stage(self, name: StageName) -> None:
        stage = self._transition(name, "processing")
        stage.started_at = _now()

    def complete_stage(self, name: StageName, result: StageResult) -> None:
        """Mark a stage completed; `result` must be the stage's declared type."""
        expected = STAGE_RESULT_TYPES[name]
        if not isinstance(result, expected):
            raise TypeError(
                f"Stage {name} expects {expected.__name__}, got {type(result).__name__}"
            )
        stage = self._transition(name, "completed")
        stage.progress = 100
        stage.result = result
        stage.ended_at = _now()
        self.results[name] = result

    def fail_stage(self, name: StageName, error: str) -> None:
        stage = self._transition(name, "failed")
        stage.error = error
        stage.ended_at = _now()

    def skip_stage(self, name: StageName, reason: str | None = None) -> None:
        stage = self._transition(name, "skipped")
        if reason:
            stage.error = reason
        stage.ended_at = _now()

    def set_stage_progress(self, name: StageName, value: float) -> None:
        """Raise a processing stage's progress; lower values are ignored."""
        stage = self.stages[name]
        if stage.status != "processing":
            return
        stage.progress = max(stage.progress, min(100, max(0, int(value))))

    # --- Pipeline transitions ---

    def set_progress(self, value: int) -> None:
        """Raise overall progress; never decreases."""
        self.progress = max(self.progress, min(100, value))

    def mark_processing(self) -> None:
        if self.status == "initializing":
            self.status = "processing"

    def complete(self, final_asset: FinalAsset) -> None:
        if self.is_terminal:
            return
        self.status = "completed"
        self.progress = 100
        self.final_asset = final_asset
        self.completed_at = _now()

    def fail(self, error: str) -> bool:
        """Mark the pipeline failed. Returns False if it was already terminal."""
        if self.is_terminal:
            return False
        self.status = "failed"
        self.error = error
        self.completed_at = _now()
        return True

    # --- Views ---

    def snapshot(self) -> PipelineSnapshot:
        """Frozen deep copy safe to hand to other tasks."""
        return PipelineSnapshot(
            id=self.id,
            status=self.status,
            progress=self.progress,
            stages={k: v.model_copy(deep=True) for k, v in self.stages.items()},
            results={k: v.model_copy(deep=True) for k, v in self.results.items()},
            error=self.error,
            created_at=self.created_at,
            completed_at=self.completed_at,
            final_asset=self.final_asset.model_copy(deep=True) if self.final_asset else None,
        )
