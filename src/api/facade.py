# src/api/facade.py — v1
"""Public API facade — single entry point for asset generation.

Usage:
    async with GenerationService() as service:
        started = service.start_pipeline({"assetId": "bronze-sword",
                                          "description": "a sword",
                                          "type": "weapon"})
        status = service.get_pipeline_status(started["pipelineId"])

Request and status payloads are plain dicts with camelCase keys.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from assetforge.api.models import StartResponse
from assetforge.config.settings import Settings, load_settings
from assetforge.core.models import PipelineConfig
from assetforge.logging.logger import setup_logging_from_settings
from assetforge.pipeline.orchestrator import PipelineOrchestrator
from assetforge.pipeline.registry import PipelineRegistry
from assetforge.providers.factory import create_collaborators

if TYPE_CHECKING:
    from assetforge.providers.factory import Collaborators

logger = logging.getLogger(__name__)


class GenerationService:
    """Starts generation pipelines and reports their status.

    Args:
        settings: Global settings. Loaded from .env if None.
        collaborators: External services. Built from settings if None.
        registry: Pipeline registry. Built around a PipelineOrchestrator if None.
        configure_logging: Apply the log_* settings to the assetforge logger.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        collaborators: Collaborators | None = None,
        registry: PipelineRegistry | None = None,
        configure_logging: bool = False,
    ) -> None:
        self._settings = settings or load_settings()
        if configure_logging:
            setup_logging_from_settings(self._settings)
        self._collaborators = collaborators
        self._owns_collaborators = False
        if registry is None:
            if self._collaborators is None:
                self._collaborators = create_collaborators(self._settings)
                self._owns_collaborators = True
            registry = PipelineRegistry(
                self._settings, PipelineOrchestrator(self._settings, self._collaborators),
            )
        self._registry = registry

    @property
    def registry(self) -> PipelineRegistry:
        return self._registry

    async def __aenter__(self) -> GenerationService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    async def start(self) -> None:
        await self._registry.start()

    async def shutdown(self) -> None:
        """Stop all pipelines and release HTTP connections we opened."""
        await self._registry.shutdown()
        if self._owns_collaborators and self._collaborators is not None:
            await self._collaborators.aclose()

    def start_pipeline(self, payload: PipelineConfig | Mapping[str, Any]) -> dict[str, Any]:
        """Validate a request and launch its pipeline.

        Returns:
            {"pipelineId", "status", "message"}; returns immediately.

        Raises:
            ConfigurationError: Missing assetId/description/type or invalid fields.
        """
        pipeline_id = self._registry.create(payload)
        snapshot = self._registry.get(pipeline_id)
        return StartResponse(pipeline_id=pipeline_id, status=snapshot.status).to_wire()

    def get_pipeline_status(self, pipeline_id: str) -> dict[str, Any]:
        """Current status with camelCase keys; absent optional fields are omitted.

        Raises:
            NotFoundError: Unknown pipeline id.
        """
        snapshot = self._registry.get(pipeline_id)
        return snapshot.model_dump(by_alias=True, mode="json", exclude_none=True)

    def list_pipelines(self) -> list[dict[str, Any]]:
        return [
            s.model_dump(by_alias=True, mode="json", exclude_none=True)
            for s in self._registry.list()
        ]

    def cancel_pipeline(self, pipeline_id: str) -> bool:
        return self._registry.cancel(pipeline_id)
