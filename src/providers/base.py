# src/providers/base.py — v1
"""Abstract interfaces for the collaborators the pipeline drives.

Concrete adapters live next to this module; tests substitute fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from assetforge.core.models import ImageResult
from assetforge.providers.models import JobStatus


class ExternalAPIError(Exception):
    """A collaborator returned an unusable response."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        prefix = f"[{provider}"
        if status_code is not None:
            prefix += f" HTTP {status_code}"
        super().__init__(f"{prefix}] {message}")


class ImageSynthesizer(ABC):
    """Concept-art generator."""

    @abstractmethod
    async def generate_image(
        self, prompt: str, asset_type: str, style: str | None = None,
    ) -> ImageResult:
        """Generate one image; `image_url` may be a data URI or a URL."""


class JobProvider(ABC):
    """Start/poll interface for one kind of long-running job."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Job kind used in logs (e.g. image-to-3d)."""

    @abstractmethod
    async def start_job(self, source: str, options: dict[str, Any]) -> str:
        """Submit a job; `source` is an image URL or a parent job id."""

    @abstractmethod
    async def get_status(self, job_id: str) -> JobStatus:
        """Fetch current job status."""


class ImageHost(ABC):
    """Promotes a locally addressable image to a public URL."""

    @abstractmethod
    async def upload_image(self, data: bytes | str) -> str:
        """Upload raw bytes or a data URI and return a public URL."""


class ModelNormalizer(ABC):
    """Rescales/repositions generated models to asset-class conventions."""

    @abstractmethod
    async def normalize_character(
        self, path: str, height_meters: float, output_path: str,
    ) -> dict[str, Any]:
        """Scale a character to the given height. Returns dimensions."""

    @abstractmethod
    async def normalize_weapon(self, path: str, output_path: str) -> dict[str, Any]:
        """Move the weapon grip to the origin. Returns dimensions."""


class Downloader(ABC):
    @abstractmethod
    async def download(self, url: str) -> bytes:
        """Fetch a remote artifact."""
