# src/providers/meshy_adapter.py — v1
"""Meshy.ai job adapters (image-to-3D, retexture, rigging) over httpx.

One `MeshyJobProvider` per job kind; all share the same request/parse
logic and differ only by endpoint and how `source` is sent.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from assetforge.providers.base import Downloader, ExternalAPIError, JobProvider
from assetforge.providers.models import JobStatus

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.meshy.ai"

# kind -> (endpoint path, request field carrying `source`)
_ENDPOINTS: dict[str, tuple[str, str]] = {
    "image-to-3d": ("/openapi/v1/image-to-3d", "image_url"),
    "retexture": ("/openapi/v1/retexture", "input_task_id"),
    "rigging": ("/openapi/v1/rigging", "input_task_id"),
}

# Default request options per kind; callers override per call.
DEFAULT_OPTIONS: dict[str, dict[str, Any]] = {
    "image-to-3d": {
        "enable_pbr": False,
        "ai_model": "meshy-4",
        "topology": "quad",
        "target_polycount": 2000,
        "texture_resolution": 512,
    },
    "retexture": {
        "art_style": "realistic",
        "ai_model": "meshy-5",
        "enable_original_uv": True,
    },
    "rigging": {"height_meters": 1.7},
}


class MeshyJobProvider(JobProvider):
    """Start and poll one kind of Meshy task."""

    def __init__(
        self,
        kind: str,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if kind not in _ENDPOINTS:
            raise ValueError(
                f"Unknown Meshy job kind {kind!r}. Available: {', '.join(sorted(_ENDPOINTS))}"
            )
        self._kind = kind
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def name(self) -> str:
        return self._kind

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _url(self, suffix: str = "") -> str:
        path, _ = _ENDPOINTS[self._kind]
        return f"{self._base_url}{path}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalAPIError(
                "meshy", exc.response.text[:300], status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalAPIError("meshy", f"{type(exc).__name__}: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalAPIError("meshy", "Response is not JSON") from exc
        if not isinstance(data, dict):
            raise ExternalAPIError("meshy", "Response is not a JSON object")
        return data

    async def start_job(self, source: str, options: dict[str, Any]) -> str:
        _, source_field = _ENDPOINTS[self._kind]
        body = {**DEFAULT_OPTIONS[self._kind], **options, source_field: source}
        data = await self._request("POST", self._url(), json=body)
        task_id = data.get("result")
        if not task_id:
            raise ExternalAPIError("meshy", f"No task id in {self._kind} response")
        logger.debug("Meshy %s task submitted: %s", self._kind, task_id)
        return str(task_id)

    async def get_status(self, job_id: str) -> JobStatus:
        data = await self._request("GET", self._url(f"/{job_id}"))
        return parse_task(data)


def parse_task(data: dict[str, Any]) -> JobStatus:
    """Map a Meshy task object onto JobStatus."""
    model_urls = {k: v for k, v in (data.get("model_urls") or {}).items() if v}

    animation_urls: dict[str, str] = {}
    basic = (data.get("result") or {}).get("basic_animations") or {}
    for key, url in basic.items():
        if url and key.endswith("_glb_url") and "armature" not in key:
            animation_urls[key[: -len("_glb_url")]] = url

    task_error = data.get("task_error") or {}
    error = task_error.get("message") or data.get("error") or None

    progress = data.get("progress")
    return JobStatus(
        status=str(data.get("status", "PENDING")),
        progress=int(progress) if progress is not None else None,
        model_urls=model_urls,
        animation_urls=animation_urls,
        polycount=data.get("polycount"),
        error=error,
        raw=data,
    )


class HttpDownloader(Downloader):
    """Plain GET of result artifacts."""

    def __init__(self, timeout_s: float = 120.0, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_s, follow_redirects=True)

    async def download(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalAPIError(
                "download", f"Failed to download {url}", status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalAPIError("download", f"{type(exc).__name__}: {exc}") from exc
        return response.content
