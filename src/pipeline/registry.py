# src/pipeline/registry.py — v1
"""Pipeline registry — owns running pipelines and their tasks.

Lifecycle:
  registry = PipelineRegistry(settings, orchestrator)
  await registry.start()        # begins the periodic sweep
  pid = registry.create({...})  # spawns one asyncio task per pipeline
  registry.get(pid)             # frozen snapshot
  await registry.shutdown()     # cancels pipelines, awaits tasks

Also usable as `async with PipelineRegistry(...) as registry:`.
All methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import ValidationError

from assetforge.config.settings import ConfigurationError
from assetforge.core.models import PipelineConfig, PipelineSnapshot
from assetforge.pipeline.state import PipelineState

if TYPE_CHECKING:
    from assetforge.config.settings import Settings
    from assetforge.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

# (wire key, attribute) pairs that must be present and non-blank.
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("assetId", "asset_id"),
    ("description", "description"),
    ("type", "type"),
)


class NotFoundError(KeyError):
    """Raised when a pipeline id is unknown (never created or swept)."""

    def __init__(self, pipeline_id: str):
        self.pipeline_id = pipeline_id
        super().__init__(f"Pipeline {pipeline_id} not found")

    def __str__(self) -> str:
        return self.args[0]


def parse_config(config: PipelineConfig | Mapping[str, Any]) -> PipelineConfig:
    """Validate a start request.

    Raises:
        ConfigurationError: Required fields missing/blank, or any other
            validation failure.
    """
    if isinstance(config, PipelineConfig):
        data: Mapping[str, Any] = config.model_dump()
    else:
        data = config

    missing = [
        wire for wire, attr in REQUIRED_FIELDS
        if not str(data.get(wire) or data.get(attr) or "").strip()
    ]
    if missing:
        raise ConfigurationError(f"Missing required fields: {', '.join(missing)}")

    if isinstance(config, PipelineConfig):
        return config
    try:
        return PipelineConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid pipeline config: {exc}") from exc


class PipelineRegistry:
    """Tracks pipelines by id and runs each one in its own task.

    Args:
        settings: Application settings (retention and sweep interval).
        orchestrator: Runs a PipelineState to completion.
    """

    def __init__(self, settings: Settings, orchestrator: PipelineOrchestrator) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._pipelines: dict[str, PipelineState] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    async def __aenter__(self) -> PipelineRegistry:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def __len__(self) -> int:
        return len(self._pipelines)

    def __contains__(self, pipeline_id: object) -> bool:
        return pipeline_id in self._pipelines

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the periodic sweep of expired pipelines."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop(), name="pipeline-sweeper")
            logger.info(
                "Pipeline registry started (retention=%ss, sweep every %ss)",
                self._settings.pipeline_retention_s,
                self._settings.sweep_interval_s,
            )

    async def shutdown(self) -> None:
        """Stop sweeping, signal every running pipeline, and wait for them."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            await asyncio.gather(self._sweeper, return_exceptions=True)
            self._sweeper = None

        running = []
        for pipeline_id, task in list(self._tasks.items()):
            if task.done():
                continue
            running.append(task)
            state = self._pipelines.get(pipeline_id)
            if state is not None:
                state.cancel_event.set()
        if running:
            logger.info("Waiting for %d running pipeline(s)", len(running))
            await asyncio.gather(*running, return_exceptions=True)
        self._tasks.clear()

    # --- Pipelines ---

    def create(self, config: PipelineConfig | Mapping[str, Any]) -> str:
        """Register a pipeline and launch it. Returns the pipeline id.

        Raises:
            ConfigurationError: Invalid request; no task is spawned.
            RuntimeError: No running event loop; nothing is registered.
        """
        parsed = parse_config(config)
        state = PipelineState.create(parsed)

        runner = self._run(state)
        try:
            task = asyncio.create_task(runner, name=state.id)
        except RuntimeError:
            runner.close()
            raise
        self._pipelines[state.id] = state
        self._tasks[state.id] = task
        task.add_done_callback(lambda _t, pid=state.id: self._tasks.pop(pid, None))

        logger.info("Created pipeline %s for asset %s", state.id, parsed.asset_id)
        return state.id

    def get(self, pipeline_id: str) -> PipelineSnapshot:
        """Snapshot of one pipeline.

        Raises:
            NotFoundError: Unknown id.
        """
        state = self._pipelines.get(pipeline_id)
        if state is None:
            raise NotFoundError(pipeline_id)
        return state.snapshot()

    def list(self) -> list[PipelineSnapshot]:
        """Snapshots of every tracked pipeline, oldest first."""
        return [
            s.snapshot()
            for s in sorted(self._pipelines.values(), key=lambda s: s.created_at)
        ]

    def cancel(self, pipeline_id: str) -> bool:
        """Signal cancellation. Returns False when the pipeline is already terminal.

        Raises:
            NotFoundError: Unknown id.
        """
        state = self._pipelines.get(pipeline_id)
        if state is None:
            raise NotFoundError(pipeline_id)
        if state.is_terminal:
            return False
        state.cancel_event.set()
        logger.info("Cancellation requested for pipeline %s", pipeline_id)
        return True

    async def wait(self, pipeline_id: str) -> PipelineSnapshot:
        """Wait for a pipeline's task to finish and return its final snapshot."""
        task = self._tasks.get(pipeline_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.get(pipeline_id)

    def sweep(self, now: datetime | None = None) -> int:
        """Drop terminal pipelines finished longer than the retention period ago."""
        now = now or datetime.now(timezone.utc)
        retention = self._settings.pipeline_retention_s
        expired = [
            pid for pid, s in self._pipelines.items()
            if s.is_terminal
            and s.completed_at is not None
            and (now - s.completed_at).total_seconds() > retention
        ]
        for pid in expired:
            del self._pipelines[pid]
        if expired:
            logger.info("Swept %d expired pipeline(s)", len(expired))
        return len(expired)

    # --- Internals ---

    async def _run(self, state: PipelineState) -> None:
        """Task body: run the orchestrator, capturing anything that escapes it."""
        try:
            await self._orchestrator.run(state)
        except asyncio.CancelledError:
            state.fail("Pipeline cancelled")
            raise
        except Exception as exc:
            logger.exception("Pipeline %s crashed", state.id)
            state.fail(f"{type(exc).__name__}: {exc}")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.sweep_interval_s)
            try:
                self.sweep()
            except Exception:
                logger.exception("Pipeline sweep failed")
