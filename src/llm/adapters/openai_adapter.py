# src/llm/adapters/openai_adapter.py — v1
"""OpenAI chat-completions adapter."""

from __future__ import annotations

from typing import Any

from assetforge.llm.base_client import BaseLLMClient
from assetforge.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    def __init__(self, model: str = "gpt-4", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key
        self.__client = None

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(api_key=self._api_key)
        return self.__client

    async def _send(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        chat = [{"role": "system", "content": system}] if system else []
        chat += [{"role": m.role, "content": m.content} for m in messages]

        resp = await self._client.chat.completions.create(
            model=self._model,
            messages=chat,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        usage = resp.usage
        return LLMResponse(
            content=resp.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            raw_response=resp,
        )

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return "openai"
