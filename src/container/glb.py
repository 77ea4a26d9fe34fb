# src/container/glb.py — v1
"""Binary glTF (GLB) container editor.

Reads a GLB file into an ordered list of chunks, edits the JSON scene
document, and writes it back with recomputed lengths.

Layout:
  header  = magic "glTF" | version u32 LE | total length u32 LE
  chunk   = payload length u32 LE | 4-byte type tag | payload (4-byte aligned)

The JSON chunk is padded with ASCII spaces, every other chunk with zeros.
"""

from __future__ import annotations

import json
import logging
import struct
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

MAGIC = b"glTF"
JSON_TAG = b"JSON"
BIN_TAG = b"BIN\x00"

HEADER = struct.Struct("<4sII")
CHUNK_HEADER = struct.Struct("<I4s")

_JSON_PAD = b" "
_BIN_PAD = b"\x00"


class FormatError(ValueError):
    """Raised when bytes are not a well-formed GLB container."""


@dataclass(frozen=True)
class Chunk:
    """One chunk record. `data` excludes trailing alignment padding."""

    tag: bytes
    data: bytes

    @property
    def is_json(self) -> bool:
        return self.tag == JSON_TAG

    @property
    def is_bin(self) -> bool:
        return self.tag == BIN_TAG


@dataclass
class Container:
    """In-memory GLB: header version plus chunks in file order."""

    version: int = 2
    chunks: list[Chunk] = field(default_factory=list)

    @property
    def json_chunk(self) -> Chunk:
        for chunk in self.chunks:
            if chunk.is_json:
                return chunk
        raise FormatError("Container has no JSON chunk")

    @property
    def bin_chunk(self) -> Chunk | None:
        for chunk in self.chunks:
            if chunk.is_bin:
                return chunk
        return None

    def document(self) -> dict[str, Any]:
        """Decode the JSON chunk into a scene document."""
        raw = self.json_chunk.data
        try:
            doc = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FormatError(f"JSON chunk is not valid UTF-8 JSON: {exc}") from exc
        if not isinstance(doc, dict):
            raise FormatError("JSON chunk must hold an object")
        return doc

    def with_document(self, doc: dict[str, Any]) -> Container:
        """Return a copy whose JSON chunk holds `doc` (compact encoding)."""
        payload = json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        chunks = [
            Chunk(JSON_TAG, payload) if c.is_json else c
            for c in self.chunks
        ]
        return Container(version=self.version, chunks=chunks)


def _padded(length: int) -> int:
    return (length + 3) & ~3


def parse(data: bytes) -> Container:
    """Parse GLB bytes into a Container.

    Raises:
        FormatError: On bad magic, inconsistent lengths, truncated chunks,
            or a chunk set other than one JSON and at most one BIN.
    """
    if len(data) < HEADER.size:
        raise FormatError(f"Input too short for GLB header: {len(data)} bytes")

    magic, version, declared = HEADER.unpack_from(data, 0)
    if magic != MAGIC:
        raise FormatError(f"Bad magic {magic!r}, expected {MAGIC!r}")
    if declared < HEADER.size:
        raise FormatError(f"Declared length {declared} smaller than header")
    if declared > len(data):
        raise FormatError(
            f"Declared length {declared} exceeds available {len(data)} bytes"
        )

    chunks: list[Chunk] = []
    offset = HEADER.size
    while offset < declared:
        if offset + CHUNK_HEADER.size > declared:
            raise FormatError(f"Truncated chunk header at offset {offset}")
        length, tag = CHUNK_HEADER.unpack_from(data, offset)
        start = offset + CHUNK_HEADER.size
        end = start + length
        if end > declared:
            raise FormatError(
                f"Chunk {tag!r} at offset {offset} overruns declared length"
            )
        chunks.append(Chunk(tag=bytes(tag), data=bytes(data[start:end])))
        offset = start + _padded(length)

    json_count = sum(1 for c in chunks if c.is_json)
    if json_count != 1:
        raise FormatError(f"Expected exactly one JSON chunk, found {json_count}")
    bin_count = sum(1 for c in chunks if c.is_bin)
    if bin_count > 1:
        raise FormatError(f"Expected at most one BIN chunk, found {bin_count}")

    return Container(version=version, chunks=chunks)


def strip_animations(container: Container) -> Container:
    """Return a copy without the top-level `animations` entry.

    Nodes, meshes, skins and materials are left as they are. Buffer regions
    that backed keyframe data stay in the BIN chunk.
    """
    doc = container.document()
    if "animations" not in doc:
        return Container(version=container.version, chunks=list(container.chunks))
    del doc["animations"]
    return container.with_document(doc)


def animation_count(container: Container) -> int:
    return len(container.document().get("animations") or [])


def serialize(container: Container) -> bytes:
    """Encode a Container back to GLB bytes with recomputed lengths."""
    body = bytearray()
    for chunk in container.chunks:
        pad = _JSON_PAD if chunk.is_json else _BIN_PAD
        padded_len = _padded(len(chunk.data))
        body += CHUNK_HEADER.pack(padded_len, chunk.tag)
        body += chunk.data
        body += pad * (padded_len - len(chunk.data))

    total = HEADER.size + len(body)
    return HEADER.pack(MAGIC, container.version, total) + bytes(body)


def extract_rest_pose(data: bytes) -> bytes:
    """Derive a pose-only GLB from an animated one (same topology)."""
    container = parse(data)
    logger.debug("Stripping %d animation(s) for rest pose", animation_count(container))
    return serialize(strip_animations(container))
