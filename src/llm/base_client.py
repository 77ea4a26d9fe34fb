# src/llm/base_client.py — v1
"""Abstract text-completion client interface.

Adapters implement `_send`; `complete` adds timing and debug logging so
every provider reports latency the same way.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from assetforge.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 200,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion with latency filled in."""
        start = time.monotonic()
        response = await self._send(messages, system, max_tokens, temperature)
        latency_ms = int((time.monotonic() - start) * 1000)
        logger.debug(
            "%s completion: %d in / %d out tokens in %dms",
            self.provider_name, response.input_tokens, response.output_tokens, latency_ms,
        )
        return response.model_copy(update={"latency_ms": latency_ms})

    @abstractmethod
    async def _send(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        """Provider call; latency is measured by the caller."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier used for completions."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic)."""
