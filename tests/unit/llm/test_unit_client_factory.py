# tests/unit/llm/test_unit_client_factory.py — v1
"""Tests for llm/client_factory.py — provider registry and key resolution."""

from __future__ import annotations

import pytest

from assetforge.config.settings import Settings
from assetforge.llm import client_factory
from assetforge.llm.adapters.anthropic_adapter import AnthropicAdapter
from assetforge.llm.adapters.openai_adapter import OpenAIAdapter
from assetforge.llm.client_factory import (
    UnsupportedProviderError,
    create_llm_client,
    create_prompt_client,
    register_provider,
)


class TestCreateLLMClient:
    def test_openai_with_settings_key(self):
        settings = Settings(_env_file=None, openai_api_key="sk-test")
        client = create_llm_client("openai", "gpt-4", settings=settings)
        assert isinstance(client, OpenAIAdapter)
        assert client.model_name == "gpt-4"
        assert client._api_key == "sk-test"

    def test_anthropic(self):
        settings = Settings(_env_file=None, anthropic_api_key="ak-test")
        client = create_llm_client("anthropic", "claude-x", settings=settings)
        assert isinstance(client, AnthropicAdapter)
        assert client.provider_name == "anthropic"
        assert client._api_key == "ak-test"

    def test_explicit_key_wins(self):
        settings = Settings(_env_file=None, openai_api_key="sk-settings")
        client = create_llm_client("openai", "gpt-4", settings=settings, api_key="sk-explicit")
        assert client._api_key == "sk-explicit"

    def test_unsupported(self):
        with pytest.raises(UnsupportedProviderError, match="ollama"):
            create_llm_client("ollama", "llama3")


class TestCreatePromptClient:
    def test_none_without_key(self):
        assert create_prompt_client(Settings(_env_file=None)) is None

    def test_openai(self):
        settings = Settings(_env_file=None, openai_api_key="sk-test", prompt_llm_model="gpt-4o")
        client = create_prompt_client(settings)
        assert isinstance(client, OpenAIAdapter)
        assert client.model_name == "gpt-4o"

    def test_anthropic(self):
        settings = Settings(
            _env_file=None, prompt_llm_provider="anthropic", anthropic_api_key="ak-test",
        )
        assert isinstance(create_prompt_client(settings), AnthropicAdapter)


class TestRegisterProvider:
    def test_register_custom(self, monkeypatch):
        monkeypatch.setattr(client_factory, "_PROVIDERS", dict(client_factory._PROVIDERS))
        register_provider("custom", "assetforge.llm.adapters.openai_adapter.OpenAIAdapter")
        client = create_llm_client("custom", "my-model")
        assert isinstance(client, OpenAIAdapter)
        assert client.model_name == "my-model"

    def test_register_with_key_field(self, monkeypatch):
        monkeypatch.setattr(client_factory, "_PROVIDERS", dict(client_factory._PROVIDERS))
        register_provider(
            "proxy", "assetforge.llm.adapters.openai_adapter.OpenAIAdapter",
            key_field="openai_api_key",
        )
        settings = Settings(_env_file=None, openai_api_key="sk-proxy")
        client = create_llm_client("proxy", "gpt-4", settings=settings)
        assert client._api_key == "sk-proxy"
