# src/prompts/enhancer.py — v1
"""Prompt enhancement via a single LLM completion, with deterministic fallback.

`PromptEnhancer.enhance` never raises: any failure (no client, provider
error, empty completion) produces the fallback prompt and records the
reason in `diagnostic_error`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from assetforge.core.models import PipelineConfig, PromptEnhancement
from assetforge.llm.models import Message
from assetforge.prompts.templates import (
    build_system_prompt,
    build_user_prompt,
    extract_keywords,
    fallback_prompt,
)

if TYPE_CHECKING:
    from assetforge.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class PromptEnhancer:
    """Rewrites an asset description into a generation-ready prompt."""

    def __init__(
        self,
        llm: BaseLLMClient | None,
        temperature: float = 0.7,
        max_tokens: int = 200,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def enhance(self, description: str, config: PipelineConfig) -> PromptEnhancement:
        """Return an optimized prompt for `description`.

        Args:
            description: Free-text asset description.
            config: Pipeline configuration (asset class, style, avatar flag).

        Returns:
            PromptEnhancement; `diagnostic_error` is set when the fallback was used.
        """
        if self._llm is None:
            return self._fallback(description, config, "No LLM client configured")

        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=build_user_prompt(config.type, description))],
                system=build_system_prompt(config.style, config.is_avatar),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:  # provider errors are not fatal here
            logger.warning("Prompt enhancement failed, using fallback: %s", exc)
            return self._fallback(description, config, f"{type(exc).__name__}: {exc}")

        optimized = response.content.strip()
        if not optimized:
            logger.warning("Prompt enhancement returned empty content, using fallback")
            return self._fallback(description, config, "Empty completion")

        return PromptEnhancement(
            original_prompt=description,
            optimized_prompt=optimized,
            model=response.model or self._llm.model_name,
            keywords=extract_keywords(optimized),
        )

    @staticmethod
    def _fallback(description: str, config: PipelineConfig, reason: str) -> PromptEnhancement:
        optimized = fallback_prompt(description, config.style)
        return PromptEnhancement(
            original_prompt=description,
            optimized_prompt=optimized,
            keywords=extract_keywords(optimized),
            diagnostic_error=reason,
        )
