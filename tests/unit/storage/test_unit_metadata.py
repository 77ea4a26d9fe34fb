# tests/unit/storage/test_unit_metadata.py — v1
"""Tests for storage/metadata.py — sidecar builders and merges."""

from __future__ import annotations

import pytest

from assetforge.core.models import ConversionResult, MaterialPreset, PipelineConfig
from assetforge.storage.metadata import (
    build_base_metadata,
    build_variant_metadata,
    mark_rig_failed,
    mark_rigged,
    merge_variant_ids,
    update_metadata,
)


def _conversion(**kwargs) -> ConversionResult:
    defaults = dict(
        task_id="task-1",
        model_url="https://cdn/m.glb",
        local_path="bronze-sword/bronze-sword.glb",
        raw_path="bronze-sword/bronze-sword_raw.glb",
    )
    defaults.update(kwargs)
    return ConversionResult(**defaults)


class TestBaseMetadata:
    def test_fields(self):
        config = PipelineConfig(
            asset_id="bronze-sword", description="a sword", type="weapon", subtype="sword",
            material_presets=[MaterialPreset(id="iron")],
        )
        meta = build_base_metadata(config, "detailed", _conversion(), has_concept_art=False)

        assert meta["gameId"] == "bronze-sword"
        assert meta["name"] == "bronze-sword"
        assert meta["detailedPrompt"] == "detailed"
        assert meta["isBaseModel"] is True
        assert meta["materialVariants"] == ["iron"]
        assert meta["hasConceptArt"] is False
        assert meta["meshyTaskId"] == "task-1"
        assert meta["variants"] == []
        assert meta["variantCount"] == 0
        assert meta["normalized"] is False
        assert meta["normalizationDate"] is None

    def test_normalized(self, weapon_config):
        meta = build_base_metadata(
            weapon_config, "p", _conversion(normalized=True, dimensions={"length": 1.0}),
        )
        assert meta["normalized"] is True
        assert meta["normalizationDate"] is not None
        assert meta["dimensions"] == {"length": 1.0}


class TestVariantMetadata:
    def test_links_to_parent(self, weapon_config):
        preset = MaterialPreset(
            id="iron", display_name="Iron", category="metal", tier=2, style_prompt="iron blade",
        )
        meta = build_variant_metadata(weapon_config, preset, "bronze-sword-iron", "task-1", "task-9")

        assert meta["gameId"] == "bronze-sword-iron"
        assert meta["isBaseModel"] is False
        assert meta["isVariant"] is True
        assert meta["parentBaseModel"] == "bronze-sword"
        assert meta["baseModelTaskId"] == "task-1"
        assert meta["retextureTaskId"] == "task-9"
        assert meta["materialPreset"]["displayName"] == "Iron"
        assert meta["materialPreset"]["stylePrompt"] == "iron blade"


class TestMerges:
    def test_merge_variant_ids_dedups(self):
        merged = merge_variant_ids({"variants": ["a-x"]}, ["a-x", "a-y"])
        assert merged["variants"] == ["a-x", "a-y"]
        assert merged["variantCount"] == 2
        assert merged["lastVariantGenerated"] == "a-y"

    def test_merge_does_not_mutate_input(self):
        original = {"variants": ["a-x"]}
        merge_variant_ids(original, ["a-y"])
        assert original == {"variants": ["a-x"]}

    def test_mark_rigged_with_rest_pose(self):
        meta = mark_rigged(
            {"gameId": "goblin"}, "goblin", "rig-1", 1.7,
            {"walking": "animations/walking.glb"}, "goblin/t-pose.glb",
        )
        assert meta["gameId"] == "goblin"
        assert meta["isRigged"] is True
        assert meta["riggingTaskId"] == "rig-1"
        assert meta["animations"]["basic"] == {
            "walking": "animations/walking.glb", "tpose": "t-pose.glb",
        }
        assert meta["tposeModelPath"] == "t-pose.glb"
        assert meta["riggedModelPath"] == "goblin_rigged.glb"

    def test_mark_rigged_without_rest_pose(self):
        meta = mark_rigged({}, "goblin", "rig-1", 1.7, {}, None)
        assert "tpose" not in meta["animations"]["basic"]
        assert meta["tposeModelPath"] is None

    def test_mark_rig_failed(self):
        meta = mark_rig_failed({"isRigged": True}, "timeout")
        assert meta["isRigged"] is False
        assert meta["riggingStatus"] == "failed"
        assert meta["riggingError"] == "timeout"
        assert meta["riggingAttempted"] is True


class TestUpdateMetadata:
    @pytest.mark.asyncio
    async def test_read_modify_write(self, memory_store):
        await memory_store.write_json("a/metadata.json", {"variants": []})
        result = await update_metadata(memory_store, "a", lambda m: merge_variant_ids(m, ["a-x"]))
        assert result["variants"] == ["a-x"]
        assert memory_store.json("a/metadata.json")["variants"] == ["a-x"]

    @pytest.mark.asyncio
    async def test_missing_sidecar_starts_empty(self, memory_store):
        await update_metadata(memory_store, "a", lambda m: {**m, "touched": True})
        assert memory_store.json("a/metadata.json") == {"touched": True}
