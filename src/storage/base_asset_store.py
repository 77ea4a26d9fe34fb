# src/storage/base_asset_store.py — v1
"""Abstract asset store: per-asset artifacts and JSON sidecars."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class FileSystemError(Exception):
    """Raised when an artifact cannot be read or written."""

    def __init__(self, operation: str, path: str, reason: str):
        self.operation = operation
        self.path = path
        super().__init__(f"{operation} failed for {path}: {reason}")


class BaseAssetStore(ABC):
    """Unified interface for asset storage backends.

    Paths are relative to the store root, e.g. "bronze-sword/metadata.json".
    """

    @abstractmethod
    async def write_bytes(self, path: str, content: bytes) -> None:
        """Write binary content, creating parent directories."""

    @abstractmethod
    async def read_bytes(self, path: str) -> bytes:
        """Read binary content."""

    @abstractmethod
    async def write_json(self, path: str, data: dict[str, Any]) -> None:
        """Write a JSON document (pretty-printed)."""

    @abstractmethod
    async def read_json(self, path: str) -> dict[str, Any]:
        """Read a JSON document."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def copy(self, src: str, dst: str) -> None:
        """Copy a file."""

    @abstractmethod
    def resolve(self, path: str) -> str:
        """Absolute location of `path`, for collaborators that need a real file."""
