# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides a GLB byte builder, an in-memory asset store, fake external
collaborators and fast settings. No network: all I/O is faked.
"""

from __future__ import annotations

import json
import struct
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from assetforge.config.settings import Settings
from assetforge.core.models import ImageResult, PipelineConfig
from assetforge.llm.models import LLMResponse
from assetforge.providers.base import (
    Downloader,
    ExternalAPIError,
    ImageHost,
    ImageSynthesizer,
    JobProvider,
    ModelNormalizer,
)
from assetforge.providers.factory import Collaborators
from assetforge.providers.models import JobStatus
from assetforge.storage.base_asset_store import BaseAssetStore, FileSystemError


# === GLB builder ===


def make_glb(
    doc: dict[str, Any],
    bin_data: bytes | None = None,
    extra_chunks: list[tuple[bytes, bytes]] | None = None,
    version: int = 2,
) -> bytes:
    """Well-formed GLB bytes (chunk lengths include alignment padding)."""
    def chunk(tag: bytes, payload: bytes, pad: bytes) -> bytes:
        payload += pad * (-len(payload) % 4)
        return struct.pack("<I4s", len(payload), tag) + payload

    body = chunk(b"JSON", json.dumps(doc).encode("utf-8"), b" ")
    if bin_data is not None:
        body += chunk(b"BIN\x00", bin_data, b"\x00")
    for tag, payload in extra_chunks or []:
        body += chunk(tag, payload, b"\x00")
    return struct.pack("<4sII", b"glTF", version, 12 + len(body)) + body


SCENE_DOC: dict[str, Any] = {
    "asset": {"version": "2.0"},
    "scene": 0,
    "scenes": [{"nodes": [0]}],
    "nodes": [{"mesh": 0, "name": "Body"}],
    "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "material": 0}]}],
    "materials": [
        {"pbrMetallicRoughness": {"baseColorFactor": [0.8, 0.5, 0.2, 1.0]}},
        {"pbrMetallicRoughness": {"baseColorFactor": [0.8, 0.5, 0.2, 1.0]}},
        {"pbrMetallicRoughness": {"baseColorFactor": [0.1, 0.1, 0.1, 1.0]}},
    ],
}

ANIMATED_DOC: dict[str, Any] = {
    **SCENE_DOC,
    "skins": [{"joints": [0]}],
    "animations": [
        {"name": "Walk", "channels": [], "samplers": []},
        {"name": "Idle", "channels": [], "samplers": []},
    ],
}


@pytest.fixture
def glb_builder() -> Callable[..., bytes]:
    return make_glb


@pytest.fixture
def static_glb() -> bytes:
    return make_glb(SCENE_DOC, bin_data=b"\x01\x02\x03\x04\x05\x06")


@pytest.fixture
def animated_glb() -> bytes:
    return make_glb(ANIMATED_DOC, bin_data=bytes(range(16)))


# === In-memory store ===


class InMemoryAssetStore(BaseAssetStore):
    """Dict-backed asset store; `fail_writes` makes matching writes raise."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.fail_writes: set[str] = set()

    async def write_bytes(self, path: str, content: bytes) -> None:
        if path in self.fail_writes:
            raise FileSystemError("write", path, "simulated failure")
        self.files[path] = bytes(content)

    async def read_bytes(self, path: str) -> bytes:
        if path not in self.files:
            raise FileSystemError("read", path, "no such file")
        return self.files[path]

    async def write_json(self, path: str, data: dict[str, Any]) -> None:
        await self.write_bytes(path, json.dumps(data, default=str).encode("utf-8"))

    async def read_json(self, path: str) -> dict[str, Any]:
        return json.loads((await self.read_bytes(path)).decode("utf-8"))

    async def exists(self, path: str) -> bool:
        return path in self.files

    async def copy(self, src: str, dst: str) -> None:
        await self.write_bytes(dst, await self.read_bytes(src))

    def resolve(self, path: str) -> str:
        return f"/mem/{path}"

    def json(self, path: str) -> dict[str, Any]:
        """Synchronous helper for assertions."""
        return json.loads(self.files[path].decode("utf-8"))


@pytest.fixture
def memory_store() -> InMemoryAssetStore:
    return InMemoryAssetStore()


# === Fake collaborators ===


class FakeImageSynthesizer(ImageSynthesizer):
    def __init__(self, image_url: str = "https://cdn.example.com/concept.png", error: Exception | None = None):
        self.image_url = image_url
        self.error = error
        self.prompts: list[str] = []
        self.styles: list[str | None] = []

    async def generate_image(self, prompt: str, asset_type: str, style: str | None = None) -> ImageResult:
        self.prompts.append(prompt)
        self.styles.append(style)
        if self.error is not None:
            raise self.error
        return ImageResult(image_url=self.image_url, prompt=prompt)


class FakeJobProvider(JobProvider):
    """Replays scripted statuses per job.

    `script` maps a job number (1-based, in start order) to the statuses
    returned by successive polls; the last status repeats. Jobs without a
    script succeed immediately with `default`.
    """

    def __init__(
        self,
        kind: str,
        default: JobStatus | None = None,
        script: dict[int, list[JobStatus]] | None = None,
    ) -> None:
        self._kind = kind
        self.default = default or JobStatus(
            status="SUCCEEDED", model_urls={"glb": f"https://cdn.example.com/{kind}.glb"},
        )
        self.script = script or {}
        self.started: list[tuple[str, dict[str, Any]]] = []
        self.polls: dict[str, int] = {}
        self._job_numbers: dict[str, int] = {}

    @property
    def name(self) -> str:
        return self._kind

    async def start_job(self, source: str, options: dict[str, Any]) -> str:
        self.started.append((source, options))
        number = len(self.started)
        job_id = f"{self._kind}-task-{number}"
        self._job_numbers[job_id] = number
        return job_id

    async def get_status(self, job_id: str) -> JobStatus:
        count = self.polls.get(job_id, 0)
        self.polls[job_id] = count + 1
        statuses = self.script.get(self._job_numbers[job_id])
        if not statuses:
            return self.default
        return statuses[min(count, len(statuses) - 1)]


class FakeDownloader(Downloader):
    def __init__(self, files: dict[str, bytes] | None = None, default: bytes = b"") -> None:
        self.files = files or {}
        self.default = default
        self.urls: list[str] = []

    async def download(self, url: str) -> bytes:
        self.urls.append(url)
        if url in self.files:
            return self.files[url]
        if self.default:
            return self.default
        raise ExternalAPIError("download", f"Failed to download {url}", status_code=404)


class FakeImageHost(ImageHost):
    def __init__(self, public_url: str = "https://img.example.com/up.png", error: Exception | None = None):
        self.public_url = public_url
        self.error = error
        self.uploads: list[bytes | str] = []

    async def upload_image(self, data: bytes | str) -> str:
        self.uploads.append(data)
        if self.error is not None:
            raise self.error
        return self.public_url


class FakeNormalizer(ModelNormalizer):
    def __init__(self, store: InMemoryAssetStore, error: Exception | None = None):
        self.store = store
        self.error = error
        self.calls: list[tuple[str, ...]] = []

    def _rel(self, path: str) -> str:
        return path.removeprefix("/mem/")

    async def normalize_character(self, path: str, height_meters: float, output_path: str) -> dict[str, Any]:
        self.calls.append(("character", path, str(height_meters)))
        if self.error is not None:
            raise self.error
        self.store.files[self._rel(output_path)] = self.store.files[self._rel(path)]
        return {"height": height_meters, "width": 0.6, "depth": 0.3}

    async def normalize_weapon(self, path: str, output_path: str) -> dict[str, Any]:
        self.calls.append(("weapon", path))
        if self.error is not None:
            raise self.error
        self.store.files[self._rel(output_path)] = self.store.files[self._rel(path)]
        return {"length": 1.1}


# === Settings / collaborators ===


@pytest.fixture
def settings() -> Settings:
    """Fast-polling settings that ignore any local .env file."""
    return Settings(
        _env_file=None,
        poll_interval_s=0.001,
        poll_max_attempts=5,
        retexture_max_attempts=5,
        rigging_max_attempts=5,
        sweep_interval_s=0.01,
    )


@pytest.fixture
def collaborators(memory_store: InMemoryAssetStore, static_glb: bytes) -> Collaborators:
    return Collaborators(
        image_synthesizer=FakeImageSynthesizer(),
        converter=FakeJobProvider("image-to-3d"),
        retexturer=FakeJobProvider("retexture"),
        rigger=FakeJobProvider("rigging"),
        downloader=FakeDownloader(default=static_glb),
        store=memory_store,
        temp_store=InMemoryAssetStore(),
    )


@pytest.fixture
def weapon_config() -> PipelineConfig:
    return PipelineConfig(asset_id="bronze-sword", description="a sword", type="weapon")


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm_response() -> LLMResponse:
    """Standard mock LLM response."""
    return LLMResponse(
        content="A bronze sword with a leather-wrapped grip, low-poly style.",
        input_tokens=100,
        output_tokens=50,
        model="gpt-4",
        provider="openai",
        latency_ms=500,
    )


@pytest.fixture
def mock_llm_client(mock_llm_response: LLMResponse) -> AsyncMock:
    """Mock BaseLLMClient with default response."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=mock_llm_response)
    client.model_name = "gpt-4"
    client.provider_name = "mock"
    return client
