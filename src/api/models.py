# src/api/models.py — v1
"""API-level models returned by the service facade."""

from __future__ import annotations

from assetforge.core.models import WireModel


class StartResponse(WireModel):
    """Return value of GenerationService.start_pipeline()."""

    pipeline_id: str
    status: str
    message: str = "Pipeline started successfully"
