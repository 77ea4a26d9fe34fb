# src/llm/client_factory.py — v2
"""Factory: instantiate text-completion clients by provider name."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass

from assetforge.config.settings import Settings
from assetforge.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderEntry:
    """Where a provider's adapter lives and which setting holds its key."""

    class_path: str
    key_field: str | None = None


# Adapters are imported lazily so an unused SDK is never loaded.
_PROVIDERS: dict[str, ProviderEntry] = {
    "openai": ProviderEntry(
        "assetforge.llm.adapters.openai_adapter.OpenAIAdapter", "openai_api_key",
    ),
    "anthropic": ProviderEntry(
        "assetforge.llm.adapters.anthropic_adapter.AnthropicAdapter", "anthropic_api_key",
    ),
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def _entry(provider: str) -> ProviderEntry:
    try:
        return _PROVIDERS[provider]
    except KeyError:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDERS))}"
        ) from None


def _api_key(entry: ProviderEntry, settings: Settings | None) -> str:
    if settings is None or entry.key_field is None:
        return ""
    return getattr(settings, entry.key_field, "") or ""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter registered for `provider`.

    Args:
        provider: Provider identifier (openai, anthropic, or a registered name).
        model: Model name (e.g. gpt-4).
        settings: Source of the API key when `api_key` is not passed.
        **kwargs: Extra adapter arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    entry = _entry(provider)
    adapter_cls = _import_class(entry.class_path)

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if entry.key_field is not None:
        init_kwargs.setdefault("api_key", _api_key(entry, settings))

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_prompt_client(settings: Settings) -> BaseLLMClient | None:
    """Client used for prompt enhancement, or None when its key is not configured."""
    provider = settings.prompt_llm_provider
    entry = _entry(provider)
    if entry.key_field is not None and not _api_key(entry, settings):
        logger.info(
            "No API key for %s, prompt enhancement will use the fallback template",
            provider,
        )
        return None
    return create_llm_client(provider, settings.prompt_llm_model, settings=settings)


def register_provider(name: str, class_path: str, key_field: str | None = None) -> None:
    """Register a custom adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
        key_field: Settings attribute holding the provider's API key, if any.
    """
    _PROVIDERS[name] = ProviderEntry(class_path, key_field)
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    module_path, class_name = class_path.rsplit(".", 1)
    return getattr(importlib.import_module(module_path), class_name)
