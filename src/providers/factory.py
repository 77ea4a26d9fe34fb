# src/providers/factory.py — v1
"""Factory: wire concrete collaborators from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from assetforge.config.settings import Settings
from assetforge.llm.base_client import BaseLLMClient
from assetforge.llm.client_factory import create_prompt_client
from assetforge.providers.base import (
    Downloader,
    ImageHost,
    ImageSynthesizer,
    JobProvider,
    ModelNormalizer,
)
from assetforge.providers.meshy_adapter import HttpDownloader, MeshyJobProvider
from assetforge.providers.openai_image import OpenAIImageSynthesizer
from assetforge.storage.base_asset_store import BaseAssetStore
from assetforge.storage.local_store import LocalAssetStore

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """Everything an orchestrator talks to outside the process."""

    image_synthesizer: ImageSynthesizer
    converter: JobProvider
    retexturer: JobProvider
    rigger: JobProvider
    downloader: Downloader
    store: BaseAssetStore
    temp_store: BaseAssetStore | None = None
    image_host: ImageHost | None = None
    normalizer: ModelNormalizer | None = None
    prompt_llm: BaseLLMClient | None = None
    http_client: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        """Release the shared HTTP connection pool."""
        if self.http_client is not None:
            await self.http_client.aclose()


def create_collaborators(
    settings: Settings,
    image_host: ImageHost | None = None,
    normalizer: ModelNormalizer | None = None,
) -> Collaborators:
    """Build the default collaborator set.

    Args:
        settings: Application settings (keys, URLs, timeouts, paths).
        image_host: Optional public image host for promoting local URLs.
        normalizer: Optional model normalizer; without one, raw models are
            copied as-is.

    Returns:
        Collaborators sharing one httpx client.
    """
    if not settings.openai_api_key or not settings.meshy_api_key:
        logger.warning("Missing OpenAI or Meshy API key, generation features will be limited")

    client = httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=True)

    def meshy(kind: str) -> MeshyJobProvider:
        return MeshyJobProvider(
            kind,
            api_key=settings.meshy_api_key,
            base_url=settings.meshy_base_url,
            client=client,
        )

    return Collaborators(
        image_synthesizer=OpenAIImageSynthesizer(
            model=settings.image_model,
            api_key=settings.openai_api_key,
            size=settings.image_size,
        ),
        converter=meshy("image-to-3d"),
        retexturer=meshy("retexture"),
        rigger=meshy("rigging"),
        downloader=HttpDownloader(client=client),
        store=LocalAssetStore(settings.assets_root),
        temp_store=LocalAssetStore(settings.temp_images_dir),
        image_host=image_host,
        normalizer=normalizer,
        prompt_llm=create_prompt_client(settings),
        http_client=client,
    )
