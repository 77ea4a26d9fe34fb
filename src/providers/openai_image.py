# src/providers/openai_image.py — v1
"""OpenAI image-generation adapter implementing ImageSynthesizer.

Builds a class- and style-specific prompt and returns the image as a
base64 data URI (gpt-image-1 returns inline data, not URLs).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from assetforge.core.models import ImageResult
from assetforge.providers.base import ExternalAPIError, ImageSynthesizer

logger = logging.getLogger(__name__)

_STYLE_DIRECTIVES: dict[str, str] = {
    "realistic": "Photorealistic rendering with PBR materials.",
    "cartoon": "Cartoon style with vibrant colors and simplified forms.",
    "low-poly": "Low poly geometric style with flat shading.",
    "stylized": "Stylized artistic rendering with unique visual appeal.",
    "runescape2007": (
        "Old School RuneScape 2007 style, low-poly with flat shading and simple textures."
    ),
}

_TYPE_DIRECTIVES: dict[str, str] = {
    "weapon": (
        "Show the full weapon clearly on a neutral background, oriented horizontally. "
        "Include details like grips, blades, and decorative elements."
    ),
    "armor": (
        "Display the armor piece on a mannequin or stand, showing all angles "
        "and attachment points clearly."
    ),
    "character": "Full body character in T-pose, neutral expression, clear anatomy for rigging.",
    "building": (
        "3/4 isometric view of the complete structure, showing architectural details and scale."
    ),
    "tool": (
        "Show the tool clearly with handle and working end visible, "
        "realistic wear and materials."
    ),
    "consumable": "Clear view of the consumable item showing its form and purpose.",
    "resource": (
        "Raw material or resource in its natural form, showing texture "
        "and material properties clearly."
    ),
}

_DEFAULT_TYPE_DIRECTIVE = (
    "Clear view of the object on neutral background, showing all important details."
)

_QUALITY_BY_STYLE = {
    "realistic": "high",
    "cartoon": "medium",
    "low-poly": "low",
    "stylized": "medium",
}

_TECHNICAL_SUFFIX = (
    "High quality, centered composition, soft lighting, no harsh shadows, "
    "suitable for 3D reconstruction."
)


def build_image_prompt(description: str, asset_type: str, style: str | None = None) -> str:
    """Compose the synthesizer prompt from description, style and class."""
    parts = [f"Create a {asset_type} asset: {description}."]
    style_directive = _STYLE_DIRECTIVES.get(style or "realistic")
    if style_directive:
        parts.append(style_directive)
    parts.append(_TYPE_DIRECTIVES.get(asset_type.lower(), _DEFAULT_TYPE_DIRECTIVE))
    parts.append(_TECHNICAL_SUFFIX)
    return " ".join(parts)


class OpenAIImageSynthesizer(ImageSynthesizer):
    """Concept art via the OpenAI images API."""

    def __init__(
        self,
        model: str = "gpt-image-1",
        api_key: str = "",
        size: str = "1024x1024",
        **kwargs: Any,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._size = size
        self.__client = None

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(api_key=self._api_key)
        return self.__client

    async def generate_image(
        self, prompt: str, asset_type: str, style: str | None = None,
    ) -> ImageResult:
        full_prompt = build_image_prompt(prompt, asset_type, style)
        quality = _QUALITY_BY_STYLE.get(style, "medium") if style else "high"
        logger.info("Generating image with %s (quality=%s)", self._model, quality)

        try:
            response = await self._client.images.generate(
                model=self._model, prompt=full_prompt, quality=quality, size=self._size,
            )
        except Exception as exc:
            raise ExternalAPIError("openai", f"Image generation failed: {exc}") from exc

        if not response.data:
            raise ExternalAPIError("openai", "No image generated")

        item = response.data[0]
        if getattr(item, "b64_json", None):
            image_url = f"data:image/png;base64,{item.b64_json}"
        elif getattr(item, "url", None):
            image_url = item.url
        else:
            raise ExternalAPIError("openai", "No image data returned")

        return ImageResult(
            image_url=image_url,
            prompt=full_prompt,
            metadata={
                "model": self._model,
                "resolution": self._size,
                "quality": quality,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
