# src/pipeline/orchestrator.py — v1
"""Pipeline orchestrator — runs the generation stages of one pipeline.

Stages, strictly in sequence:
  promptOptimization     optional, never fails (fallback prompt)
  imageGeneration        mandatory, fatal on failure
  imageToThreeD          mandatory, fatal on failure (normalization is best-effort)
  textureGeneration      optional, per-variant failure isolation, always completes
  rigging                optional (avatars), recoverable
  vertexColorExtraction  optional, recoverable

A fatal failure marks the pipeline failed and leaves later stages pending.
A recoverable failure marks only its stage failed; the run continues.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import ipaddress
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable
from urllib.parse import urlparse

from assetforge.container.glb import FormatError, extract_rest_pose
from assetforge.container.palette import extract_palette
from assetforge.core.models import (
    ColorSummary,
    ConversionResult,
    FinalAsset,
    ImageResult,
    MaterialPreset,
    PipelineConfig,
    PromptEnhancement,
    RiggingResult,
    StageName,
    StageResult,
    TextureResult,
    VariantRecord,
)
from assetforge.jobs.poller import JobCancelledError, PollPolicy, poll_job
from assetforge.logging.context import set_pipeline_context, stage_context, variant_context
from assetforge.pipeline.state import PipelineState
from assetforge.prompts.enhancer import PromptEnhancer
from assetforge.prompts.templates import with_t_pose
from assetforge.providers.base import ExternalAPIError
from assetforge.storage import layout
from assetforge.storage.base_asset_store import FileSystemError
from assetforge.storage.metadata import (
    build_base_metadata,
    build_variant_metadata,
    mark_rig_failed,
    mark_rigged,
    merge_variant_ids,
    update_metadata,
)

if TYPE_CHECKING:
    from assetforge.config.settings import Settings
    from assetforge.providers.factory import Collaborators

logger = logging.getLogger(__name__)

# Overall progress once each stage has finished (completed, failed or skipped).
STAGE_MILESTONES: dict[str, int] = {
    "promptOptimization": 10,
    "imageGeneration": 25,
    "imageToThreeD": 50,
    "textureGeneration": 75,
    "rigging": 85,
    "vertexColorExtraction": 95,
}

# Rigging clips fetched from the provider; the first one also yields the rest pose.
ANIMATION_CLIPS: tuple[str, ...] = ("walking", "running")

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})


class StageSkipped(Exception):
    """Raised by a stage whose runtime precondition is not met."""


def is_local_url(url: str) -> bool:
    """True when an external service could not fetch `url`."""
    if url.startswith(("data:", "file:")):
        return True
    host = urlparse(url).hostname
    if not host:
        return True
    if host in _LOCAL_HOSTS or host.endswith(".local"):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def decode_data_uri(uri: str) -> bytes:
    """Payload of a base64 data URI."""
    header, _, payload = uri.partition(",")
    if not header.startswith("data:") or ";base64" not in header or not payload:
        raise ValueError("Not a base64 data URI")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


class PipelineOrchestrator:
    """Drives one pipeline through all stages.

    Args:
        settings: Application settings (poll policy, defaults, image server).
        collaborators: External services and the asset store.
        enhancer: Optional prompt enhancer; built from the collaborators'
            prompt LLM when omitted.
    """

    def __init__(
        self,
        settings: Settings,
        collaborators: Collaborators,
        enhancer: PromptEnhancer | None = None,
    ) -> None:
        self._settings = settings
        self._c = collaborators
        self._store = collaborators.store
        self._enhancer = enhancer or PromptEnhancer(
            collaborators.prompt_llm,
            temperature=settings.prompt_llm_temperature,
            max_tokens=settings.prompt_llm_max_tokens,
        )

    async def run(self, state: PipelineState) -> PipelineState:
        """Execute every stage of `state` and leave it terminal.

        Fatal stage errors are recorded on the state rather than raised.
        Task cancellation marks the pipeline failed and propagates.
        """
        config = state.config
        set_pipeline_context(state.id, config.asset_id)
        state.mark_processing()
        start_time = time.monotonic()
        logger.info("Pipeline started for %s (%s)", config.asset_id, config.type)

        try:
            await self._run_stage(state, "promptOptimization", self._enhance_prompt, fatal=False)
            await self._run_stage(state, "imageGeneration", self._generate_image, fatal=True)
            await self._run_stage(state, "imageToThreeD", self._convert_to_3d, fatal=True)
            await self._run_stage(state, "textureGeneration", self._generate_variants, fatal=False)
            await self._run_stage(state, "rigging", self._rig_character, fatal=False)
            await self._run_stage(state, "vertexColorExtraction", self._extract_colors, fatal=False)
        except asyncio.CancelledError:
            state.fail("Pipeline cancelled")
            logger.warning("Pipeline task cancelled")
            raise
        except JobCancelledError as exc:
            state.fail(f"Pipeline cancelled: {exc}")
            logger.warning("Pipeline cancelled: %s", exc)
            return state
        except Exception as exc:
            state.fail(str(exc))
            logger.error("Pipeline failed: %s", exc)
            return state

        state.complete(self._final_asset(state))
        logger.info("Pipeline completed in %.1fs", time.monotonic() - start_time)
        return state

    # ------------------------------------------------------------------
    # Stage driver
    # ------------------------------------------------------------------

    async def _run_stage(
        self,
        state: PipelineState,
        name: StageName,
        fn: Callable[[PipelineState], Awaitable[StageResult]],
        fatal: bool,
    ) -> None:
        stage = state.stage(name)
        if stage.is_terminal:
            logger.debug("Stage %s already %s", name, stage.status)
            state.set_progress(STAGE_MILESTONES[name])
            return
        if state.cancelled:
            raise JobCancelledError(f"cancelled before {name}", label=name)

        with stage_context(name):
            state.begin_stage(name)
            logger.info("Stage %s started", name)
            try:
                result = await fn(state)
            except StageSkipped as exc:
                state.skip_stage(name, str(exc))
                logger.info("Stage %s skipped: %s", name, exc)
            except (asyncio.CancelledError, JobCancelledError) as exc:
                state.fail_stage(name, str(exc) or "cancelled")
                raise
            except Exception as exc:
                state.fail_stage(name, str(exc))
                if fatal:
                    logger.error("Stage %s failed: %s", name, exc)
                    raise
                logger.warning("Stage %s failed, continuing: %s", name, exc)
            else:
                state.complete_stage(name, result)
                logger.info("Stage %s completed", name)

        state.set_progress(STAGE_MILESTONES[name])

    def _policy(self, max_attempts: int) -> PollPolicy:
        s = self._settings
        return PollPolicy(
            interval_s=s.poll_interval_s,
            max_attempts=max_attempts,
            backoff_factor=s.poll_backoff_factor,
            max_interval_s=s.poll_max_interval_s,
        )

    def _progress(self, state: PipelineState, name: StageName) -> Callable[[int], None]:
        return lambda value: state.set_stage_progress(name, value)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _enhance_prompt(self, state: PipelineState) -> PromptEnhancement:
        enhancement = await self._enhancer.enhance(state.config.description, state.config)
        if enhancement.diagnostic_error:
            logger.warning("Using fallback prompt: %s", enhancement.diagnostic_error)
        return enhancement

    async def _generate_image(self, state: PipelineState) -> ImageResult:
        config = state.config
        prompt = _working_prompt(state)
        if config.is_avatar:
            prompt = with_t_pose(prompt)

        style = config.style or self._settings.default_style or None
        result = await self._c.image_synthesizer.generate_image(prompt, config.type, style)
        if not result.image_url:
            raise ExternalAPIError("image", "Synthesizer returned no image URL")
        logger.info("Concept art generated")
        return result

    async def _convert_to_3d(self, state: PipelineState) -> ConversionResult:
        config = state.config
        asset_id = config.asset_id
        image: ImageResult = state.results["imageGeneration"]  # type: ignore[assignment]
        converter = self._c.converter

        source_url = await self._public_image_url(asset_id, image.image_url)
        job = await poll_job(
            lambda: converter.start_job(source_url, {}),
            converter.get_status,
            self._policy(self._settings.poll_max_attempts),
            on_progress=self._progress(state, "imageToThreeD"),
            cancel_event=state.cancel_event,
            label=converter.name,
        )
        model_url = job.status.glb_url
        if not model_url:
            raise ExternalAPIError(converter.name, f"Job {job.job_id} succeeded without a GLB URL")

        data = await self._c.downloader.download(model_url)
        raw_path = layout.raw_model_path(asset_id)
        await self._store.write_bytes(raw_path, data)

        normalized, dimensions = await self._normalize(config, raw_path, layout.model_path(asset_id))

        has_concept_art = await self._save_concept_art(asset_id, image.image_url)

        conversion = ConversionResult(
            task_id=job.job_id,
            model_url=model_url,
            local_path=layout.model_path(asset_id),
            raw_path=raw_path,
            polycount=job.status.polycount,
            normalized=normalized,
            dimensions=dimensions,
        )
        await self._store.write_json(
            layout.metadata_path(asset_id),
            build_base_metadata(
                config, _working_prompt(state), conversion, has_concept_art=has_concept_art,
            ),
        )
        return conversion

    async def _generate_variants(self, state: PipelineState) -> TextureResult:
        config = state.config
        base: ConversionResult = state.results["imageToThreeD"]  # type: ignore[assignment]
        presets = config.material_presets
        total = len(presets)

        records: list[VariantRecord] = []
        for i, preset in enumerate(presets):
            state.set_stage_progress("textureGeneration", i * 100 / total)
            vid = layout.variant_id(config.asset_id, preset.id)
            with variant_context(vid):
                logger.info("Generating variant %d/%d: %s", i + 1, total, preset.label)
                try:
                    record = await self._generate_variant(state, preset, vid, base)
                except JobCancelledError:
                    raise
                except Exception as exc:
                    logger.warning("Variant %s failed: %s", vid, exc)
                    record = VariantRecord(
                        id=vid, display_name=preset.label, success=False, error=str(exc),
                    )
            records.append(record)

        succeeded = [r.id for r in records if r.success]
        if succeeded:
            try:
                await update_metadata(
                    self._store, config.asset_id, lambda m: merge_variant_ids(m, succeeded),
                )
            except FileSystemError as exc:
                logger.error("Could not record variants in base metadata: %s", exc)

        logger.info("%d/%d variants generated", len(succeeded), total)
        return TextureResult(variants=records, total_variants=total)

    async def _generate_variant(
        self,
        state: PipelineState,
        preset: MaterialPreset,
        vid: str,
        base: ConversionResult,
    ) -> VariantRecord:
        retexturer = self._c.retexturer
        job = await poll_job(
            lambda: retexturer.start_job(base.task_id, {"text_style_prompt": preset.style_prompt}),
            retexturer.get_status,
            self._policy(self._settings.retexture_max_attempts),
            cancel_event=state.cancel_event,
            label=retexturer.name,
        )
        model_url = job.status.glb_url
        if not model_url:
            raise ExternalAPIError(retexturer.name, f"Job {job.job_id} succeeded without a GLB URL")

        data = await self._c.downloader.download(model_url)
        await self._store.write_bytes(layout.variant_model_path(vid), data)

        concept_art = layout.concept_art_path(state.config.asset_id)
        if await self._store.exists(concept_art):
            await self._store.copy(concept_art, layout.concept_art_path(vid))

        await self._store.write_json(
            layout.metadata_path(vid),
            build_variant_metadata(state.config, preset, vid, base.task_id, job.job_id),
        )
        return VariantRecord(id=vid, display_name=preset.label, success=True, model_url=model_url)

    async def _rig_character(self, state: PipelineState) -> RiggingResult:
        asset_id = state.config.asset_id
        try:
            return await self._rig(state)
        except JobCancelledError:
            raise
        except Exception as exc:
            try:
                await update_metadata(self._store, asset_id, lambda m: mark_rig_failed(m, str(exc)))
            except FileSystemError as meta_exc:
                logger.error("Could not record rigging failure in metadata: %s", meta_exc)
            raise

    async def _rig(self, state: PipelineState) -> RiggingResult:
        config = state.config
        asset_id = config.asset_id
        base: ConversionResult = state.results["imageToThreeD"]  # type: ignore[assignment]
        height = config.rig_height or self._settings.default_rig_height
        rigger = self._c.rigger

        job = await poll_job(
            lambda: rigger.start_job(base.task_id, {"height_meters": height}),
            rigger.get_status,
            self._policy(self._settings.rigging_max_attempts),
            on_progress=self._progress(state, "rigging"),
            cancel_event=state.cancel_event,
            label=rigger.name,
        )

        animations: dict[str, str] = {}
        rest_pose: str | None = None
        for clip in ANIMATION_CLIPS:
            url = job.status.animation_urls.get(clip)
            if not url:
                continue
            data = await self._c.downloader.download(url)
            await self._store.write_bytes(layout.animation_path(asset_id, clip), data)
            animations[clip] = layout.animation_name(clip)

            if clip == ANIMATION_CLIPS[0]:
                rest_pose = await self._derive_rest_pose(asset_id, data)
                await self._store.write_bytes(layout.rigged_model_path(asset_id), data)

        await update_metadata(
            self._store,
            asset_id,
            lambda m: mark_rigged(m, asset_id, job.job_id, height, animations, rest_pose),
        )
        return RiggingResult(task_id=job.job_id, animations=animations, rest_pose_path=rest_pose)

    async def _extract_colors(self, state: PipelineState) -> ColorSummary:
        asset_id = state.config.asset_id
        model = layout.model_path(asset_id)
        if not await self._store.exists(model):
            raise StageSkipped("No local model file")

        data = await self._store.read_bytes(model)
        summary = extract_palette(data, asset_id)
        await self._store.write_json(layout.vertex_colors_path(asset_id), summary.to_wire())
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _public_image_url(self, asset_id: str, image_url: str) -> str:
        """Make the concept art reachable by the conversion service."""
        url = image_url
        server = self._settings.image_server_base
        if image_url.startswith("data:") and server:
            name = f"{asset_id}-concept.png"
            temp_store = self._c.temp_store or self._store
            await temp_store.write_bytes(name, _image_bytes(image_url))
            url = f"{server}/{name}"

        if not is_local_url(url):
            return url

        host = self._c.image_host
        if host is None:
            if url.startswith("data:"):
                # Inline base64 is accepted by the conversion service.
                logger.warning("No image server or host configured, sending image inline")
                return url
            raise ExternalAPIError(
                "image-host", f"Cannot make {url} publicly accessible: no image host configured",
            )

        logger.info("Local image URL detected, uploading to public host")
        try:
            public_url = await host.upload_image(image_url)
        except Exception as exc:
            raise ExternalAPIError(
                "image-host", f"Cannot make image publicly accessible: {exc}",
            ) from exc
        if not public_url or is_local_url(public_url):
            raise ExternalAPIError("image-host", f"Upload returned a non-public URL: {public_url!r}")
        return public_url

    async def _normalize(
        self, config: PipelineConfig, raw_path: str, model_path: str,
    ) -> tuple[bool, dict | None]:
        """Normalize by asset class; any failure falls back to the raw model."""
        normalizer = self._c.normalizer
        kind = config.type.lower()
        if normalizer is not None and kind in ("character", "weapon"):
            src = self._store.resolve(raw_path)
            dst = self._store.resolve(model_path)
            try:
                if kind == "character":
                    height = (
                        config.character_height
                        or config.rig_height
                        or self._settings.default_character_height
                    )
                    dimensions = await normalizer.normalize_character(src, height, dst)
                else:
                    dimensions = await normalizer.normalize_weapon(src, dst)
            except Exception as exc:
                logger.warning("Normalization failed, using raw model: %s", exc)
            else:
                logger.info("Normalized %s model", kind)
                return True, dimensions

        await self._store.copy(raw_path, model_path)
        return False, None

    async def _save_concept_art(self, asset_id: str, image_url: str) -> bool:
        if not image_url.startswith("data:"):
            return False
        await self._store.write_bytes(layout.concept_art_path(asset_id), _image_bytes(image_url))
        return True

    async def _derive_rest_pose(self, asset_id: str, animated: bytes) -> str | None:
        """Write the animation-free copy of a rigged clip; failures are non-fatal."""
        path = layout.rest_pose_path(asset_id)
        try:
            await self._store.write_bytes(path, extract_rest_pose(animated))
        except (FormatError, FileSystemError) as exc:
            logger.warning("Rest pose extraction failed: %s", exc)
            return None
        return path

    def _final_asset(self, state: PipelineState) -> FinalAsset:
        config = state.config
        texture = state.results.get("textureGeneration")
        rigging = state.results.get("rigging")
        return FinalAsset(
            id=config.asset_id,
            name=config.name,
            model_url=layout.public_model_url(config.asset_id),
            concept_art_url=layout.public_concept_art_url(config.asset_id),
            variants=list(texture.variants) if isinstance(texture, TextureResult) else [],
            rest_pose_path=rigging.rest_pose_path if isinstance(rigging, RiggingResult) else None,
        )


def _working_prompt(state: PipelineState) -> str:
    """Enhanced prompt when available, else the raw description."""
    enhancement = state.results.get("promptOptimization")
    if isinstance(enhancement, PromptEnhancement):
        return enhancement.optimized_prompt
    return state.config.description


def _image_bytes(data_uri: str) -> bytes:
    try:
        return decode_data_uri(data_uri)
    except ValueError as exc:
        raise ExternalAPIError("image", f"Unreadable concept art: {exc}") from exc
