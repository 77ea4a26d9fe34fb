# tests/unit/llm/test_unit_adapters.py — v1
"""Tests for llm/adapters — request shaping and response normalization."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from assetforge.llm.adapters.anthropic_adapter import AnthropicAdapter
from assetforge.llm.adapters.openai_adapter import OpenAIAdapter
from assetforge.llm.models import Message


def _openai_response(content: str | None = "A sword.") -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=4),
    )


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_complete(self):
        adapter = OpenAIAdapter(model="gpt-4", api_key="sk-test")
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=_openai_response())
        adapter._OpenAIAdapter__client = sdk

        response = await adapter.complete(
            [Message(role="user", content="sword")], system="be terse", max_tokens=50, temperature=0.2,
        )

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4"
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "be terse"},
            {"role": "user", "content": "sword"},
        ]
        assert response.content == "A sword."
        assert response.input_tokens == 12
        assert response.output_tokens == 4
        assert response.provider == "openai"

    @pytest.mark.asyncio
    async def test_null_content(self):
        adapter = OpenAIAdapter(api_key="sk-test")
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=_openai_response(None))
        adapter._OpenAIAdapter__client = sdk
        response = await adapter.complete([Message(role="user", content="x")])
        assert response.content == ""

    def test_client_is_lazy(self):
        adapter = OpenAIAdapter(api_key="sk-test")
        assert adapter._OpenAIAdapter__client is None


class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_complete(self):
        adapter = AnthropicAdapter(model="claude-x", api_key="ak-test")
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="A bronze "),
                SimpleNamespace(type="tool_use"),
                SimpleNamespace(type="text", text="sword."),
            ],
            usage=SimpleNamespace(input_tokens=20, output_tokens=6),
            model="claude-x",
        ))
        adapter._AnthropicAdapter__client = sdk

        response = await adapter.complete(
            [Message(role="system", content="ignored"), Message(role="user", content="sword")],
            system="be terse",
        )

        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["system"] == "be terse"
        assert kwargs["messages"] == [{"role": "user", "content": "sword"}]
        assert response.content == "A bronze sword."
        assert response.input_tokens == 20
        assert response.provider == "anthropic"

    @pytest.mark.asyncio
    async def test_no_system(self):
        adapter = AnthropicAdapter(api_key="ak-test")
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[], usage=SimpleNamespace(input_tokens=1, output_tokens=0), model="m",
        ))
        adapter._AnthropicAdapter__client = sdk
        await adapter.complete([Message(role="user", content="x")])
        assert "system" not in sdk.messages.create.call_args.kwargs
