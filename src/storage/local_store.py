# src/storage/local_store.py — v1
"""Local filesystem asset store (default backend)."""

from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path
from typing import Any

from assetforge.storage.base_asset_store import BaseAssetStore, FileSystemError


class LocalAssetStore(BaseAssetStore):
    """Write assets under a local root directory.

    Blocking file I/O runs in a worker thread so polling pipelines on the
    same event loop are not stalled by large model writes.
    """

    def __init__(self, base_path: str | Path) -> None:
        self._base = Path(base_path).expanduser()

    def _resolve(self, path: str) -> Path:
        return self._base / path

    def resolve(self, path: str) -> str:
        return str(self._resolve(path))

    async def write_bytes(self, path: str, content: bytes) -> None:
        await self._run("write", path, _write_bytes, self._resolve(path), content)

    async def read_bytes(self, path: str) -> bytes:
        return await self._run("read", path, self._resolve(path).read_bytes)

    async def write_json(self, path: str, data: dict[str, Any]) -> None:
        text = json.dumps(data, indent=2, default=str)
        await self._run("write", path, _write_bytes, self._resolve(path), text.encode("utf-8"))

    async def read_json(self, path: str) -> dict[str, Any]:
        raw = await self.read_bytes(path)
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FileSystemError("read", path, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise FileSystemError("read", path, "JSON document is not an object")
        return data

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def copy(self, src: str, dst: str) -> None:
        await self._run("copy", src, _copy_file, self._resolve(src), self._resolve(dst))

    async def _run(self, operation: str, path: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except OSError as exc:
            raise FileSystemError(operation, path, str(exc)) from exc


def _write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _copy_file(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(str(src), str(dst))
