# tests/unit/logging/test_unit_handlers.py — v1
"""Tests for logging/handlers.py — size parsing, context filter, handlers."""

from __future__ import annotations

import io
import logging

import pytest

from assetforge.logging.context import (
    clear_context,
    set_pipeline_context,
    stage_context,
    variant_context,
)
from assetforge.logging.handlers import (
    ContextFilter,
    create_console_handler,
    create_rotating_handler,
    parse_size,
)


class TestParseSize:
    def test_mb(self):
        assert parse_size("10MB") == 10 * 1024 * 1024

    def test_kb_with_space(self):
        assert parse_size("512 KB") == 512 * 1024

    def test_gb(self):
        assert parse_size("1GB") == 1024 * 1024 * 1024

    def test_bytes(self):
        assert parse_size("100B") == 100

    def test_case_insensitive(self):
        assert parse_size("10mb") == 10 * 1024 * 1024

    def test_int_passthrough(self):
        assert parse_size(4096) == 4096

    @pytest.mark.parametrize("bad", ["10bytes", "", "MB", "-1MB"])
    def test_invalid_format(self, bad):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size(bad)

    def test_negative_int(self):
        with pytest.raises(ValueError):
            parse_size(-1)


class TestContextFilter:
    def teardown_method(self):
        clear_context()

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord(
            name="assetforge.test", level=logging.INFO, pathname="", lineno=0,
            msg="m", args=(), exc_info=None,
        )

    def test_stamps_context(self):
        set_pipeline_context("pipeline-1", "goblin")
        record = self._record()
        with stage_context("textureGeneration"), variant_context("goblin-bronze"):
            assert ContextFilter().filter(record) is True
        assert record.pipeline_id == "pipeline-1"
        assert record.asset_id == "goblin"
        assert record.stage == "textureGeneration"
        assert record.variant == "goblin-bronze"

    def test_empty_context(self):
        clear_context()
        record = self._record()
        ContextFilter().filter(record)
        assert record.pipeline_id is None


class TestCreateHandlers:
    def test_console_handler_has_filter(self):
        stream = io.StringIO()
        handler = create_console_handler(stream)
        assert handler.stream is stream
        assert any(isinstance(f, ContextFilter) for f in handler.filters)

    def test_rotating_handler(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "test.log", rotation="1MB", retention=5)
        try:
            assert handler.maxBytes == 1024 * 1024
            assert handler.backupCount == 5
            assert any(isinstance(f, ContextFilter) for f in handler.filters)
        finally:
            handler.close()

    def test_creates_parent_dirs(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "subdir" / "deep" / "test.log"))
        handler.close()
        assert (tmp_path / "subdir" / "deep").exists()
