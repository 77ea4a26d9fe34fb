# src/storage/layout.py — v1
"""Per-asset directory structure.

All paths are relative to the asset store root:

  {asset_id}/
    {asset_id}_raw.glb        raw provider output
    {asset_id}.glb            normalized model
    {asset_id}_rigged.glb     rigged model (avatars)
    t-pose.glb                rest pose derived from the walking clip
    concept-art.png
    metadata.json
    vertex-colors.json
    animations/{clip}.glb
  {asset_id}-{preset_id}/     one directory per material variant
"""

from __future__ import annotations

METADATA_FILE = "metadata.json"
CONCEPT_ART_FILE = "concept-art.png"
VERTEX_COLORS_FILE = "vertex-colors.json"
REST_POSE_FILE = "t-pose.glb"
ANIMATIONS_DIR = "animations"


def raw_model_path(asset_id: str) -> str:
    return f"{asset_id}/{asset_id}_raw.glb"


def model_path(asset_id: str) -> str:
    return f"{asset_id}/{asset_id}.glb"


def rigged_model_name(asset_id: str) -> str:
    return f"{asset_id}_rigged.glb"


def rigged_model_path(asset_id: str) -> str:
    return f"{asset_id}/{rigged_model_name(asset_id)}"


def rest_pose_path(asset_id: str) -> str:
    return f"{asset_id}/{REST_POSE_FILE}"


def concept_art_path(asset_id: str) -> str:
    return f"{asset_id}/{CONCEPT_ART_FILE}"


def metadata_path(asset_id: str) -> str:
    return f"{asset_id}/{METADATA_FILE}"


def vertex_colors_path(asset_id: str) -> str:
    return f"{asset_id}/{VERTEX_COLORS_FILE}"


def animation_name(clip: str) -> str:
    """Path of an animation clip relative to its asset directory."""
    return f"{ANIMATIONS_DIR}/{clip}.glb"


def animation_path(asset_id: str, clip: str) -> str:
    return f"{asset_id}/{animation_name(clip)}"


# --- Variants ---

def variant_id(asset_id: str, preset_id: str) -> str:
    return f"{asset_id}-{preset_id}"


def variant_model_path(variant: str) -> str:
    return f"{variant}/{variant}.glb"


# --- Public URLs served by the asset host ---

def public_model_url(asset_id: str) -> str:
    return f"/assets/{asset_id}/{asset_id}.glb"


def public_concept_art_url(asset_id: str) -> str:
    return f"/assets/{asset_id}/{CONCEPT_ART_FILE}"
