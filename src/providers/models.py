# src/providers/models.py — v1
"""Provider-neutral payloads returned by external collaborators."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class JobStatus(BaseModel):
    """Normalized status of an external asynchronous job.

    `status` is upper-cased; the poller treats SUCCEEDED as success,
    FAILED/CANCELED as failure, and anything else as still running.
    """

    status: str
    progress: int | None = None
    model_urls: dict[str, str] = Field(default_factory=dict)
    animation_urls: dict[str, str] = Field(default_factory=dict)
    polycount: int | None = None
    error: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator("status")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def glb_url(self) -> str | None:
        return self.model_urls.get("glb")
