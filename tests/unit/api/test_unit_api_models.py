# tests/unit/api/test_unit_api_models.py — v1
"""Tests for api/models.py."""

from __future__ import annotations

from assetforge.api.models import StartResponse


class TestStartResponse:
    def test_wire_form(self):
        wire = StartResponse(pipeline_id="pipeline-1-abc", status="initializing").to_wire()
        assert wire == {
            "pipelineId": "pipeline-1-abc",
            "status": "initializing",
            "message": "Pipeline started successfully",
        }
