# src/storage/metadata.py — v1
"""Builders and read-modify-write mergers for per-asset metadata.json sidecars.

Sidecar keys are camelCase because they are consumed by the asset browser.
Builders are pure; `update_metadata` is the only function touching the store.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from assetforge.core.models import ConversionResult, MaterialPreset, PipelineConfig
from assetforge.storage import layout
from assetforge.storage.base_asset_store import BaseAssetStore

logger = logging.getLogger(__name__)

RIG_TYPE = "humanoid-standard"
ANIMATION_COMPATIBILITY = ["mixamo", "unity", "unreal"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_base_metadata(
    config: PipelineConfig,
    detailed_prompt: str,
    conversion: ConversionResult,
    *,
    has_concept_art: bool = True,
) -> dict[str, Any]:
    """Metadata for the base model written after image-to-3D conversion."""
    now = _now()
    return {
        "name": config.name or config.asset_id,
        "gameId": config.asset_id,
        "type": config.type,
        "subtype": config.subtype,
        "description": config.description,
        "detailedPrompt": detailed_prompt,
        "generatedAt": now,
        "completedAt": now,
        "isBaseModel": True,
        "materialVariants": [p.id for p in config.material_presets],
        "isPlaceholder": False,
        "hasModel": True,
        "hasConceptArt": has_concept_art,
        "modelPath": layout.model_path(config.asset_id),
        "conceptArtUrl": f"./{layout.CONCEPT_ART_FILE}",
        "gddCompliant": True,
        "workflow": "GPT-4 -> GPT-Image-1 -> Meshy Image-to-3D (Base Model)",
        "meshyTaskId": conversion.task_id,
        "meshyStatus": "completed",
        "variants": [],
        "variantCount": 0,
        "lastVariantGenerated": None,
        "updatedAt": now,
        "normalized": conversion.normalized,
        "normalizationDate": now if conversion.normalized else None,
        "dimensions": conversion.dimensions,
    }


def build_variant_metadata(
    config: PipelineConfig,
    preset: MaterialPreset,
    variant_id: str,
    base_task_id: str,
    retexture_task_id: str,
) -> dict[str, Any]:
    """Metadata for one material variant, linked to its base model."""
    now = _now()
    return {
        "id": variant_id,
        "gameId": variant_id,
        "name": variant_id,
        "type": config.type,
        "subtype": config.subtype,
        "isBaseModel": False,
        "isVariant": True,
        "parentBaseModel": config.asset_id,
        "materialPreset": {
            "id": preset.id,
            "displayName": preset.label,
            "category": preset.category,
            "tier": preset.tier,
            "color": preset.color,
            "stylePrompt": preset.style_prompt,
        },
        "workflow": "Meshy AI Retexture",
        "baseModelTaskId": base_task_id,
        "retextureTaskId": retexture_task_id,
        "retextureStatus": "completed",
        "modelPath": f"{variant_id}.glb",
        "conceptArtPath": None,
        "hasModel": True,
        "hasConceptArt": True,
        "generatedAt": now,
        "completedAt": now,
        "description": config.description,
        "isPlaceholder": False,
        "gddCompliant": True,
    }


def merge_variant_ids(metadata: dict[str, Any], variant_ids: list[str]) -> dict[str, Any]:
    """Append succeeded variant ids to the base metadata, without duplicates."""
    merged = dict(metadata)
    existing = list(merged.get("variants") or [])
    for vid in variant_ids:
        if vid not in existing:
            existing.append(vid)
    now = _now()
    merged["variants"] = existing
    merged["variantCount"] = len(existing)
    merged["lastVariantGenerated"] = variant_ids[-1] if variant_ids else merged.get(
        "lastVariantGenerated"
    )
    merged["updatedAt"] = now
    return merged


def mark_rigged(
    metadata: dict[str, Any],
    asset_id: str,
    task_id: str,
    character_height: float,
    animations: dict[str, str],
    rest_pose_path: str | None,
) -> dict[str, Any]:
    """Record a successful rig with its clips and derived rest pose."""
    basic = dict(animations)
    if rest_pose_path:
        basic["tpose"] = layout.REST_POSE_FILE
    merged = dict(metadata)
    merged.update(
        {
            "isRigged": True,
            "riggingTaskId": task_id,
            "riggingStatus": "completed",
            "rigType": RIG_TYPE,
            "characterHeight": character_height,
            "animations": {"basic": basic},
            "riggedModelPath": layout.rigged_model_name(asset_id),
            "tposeModelPath": layout.REST_POSE_FILE if rest_pose_path else None,
            "supportsAnimation": True,
            "animationCompatibility": list(ANIMATION_COMPATIBILITY),
            "updatedAt": _now(),
        }
    )
    return merged


def mark_rig_failed(metadata: dict[str, Any], error: str) -> dict[str, Any]:
    merged = dict(metadata)
    merged.update(
        {
            "isRigged": False,
            "riggingStatus": "failed",
            "riggingError": error,
            "riggingAttempted": True,
            "updatedAt": _now(),
        }
    )
    return merged


async def update_metadata(
    store: BaseAssetStore,
    asset_id: str,
    fn: Callable[[dict[str, Any]], dict[str, Any]],
) -> dict[str, Any]:
    """Read the asset's metadata.json, apply `fn`, and write the result back.

    A missing sidecar is treated as an empty document.
    """
    path = layout.metadata_path(asset_id)
    current: dict[str, Any] = {}
    if await store.exists(path):
        current = await store.read_json(path)
    updated = fn(current)
    await store.write_json(path, updated)
    logger.debug("Updated metadata for %s", asset_id)
    return updated
