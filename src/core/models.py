# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Wire form (status payloads, sidecars) uses camelCase aliases; Python code
uses snake_case attributes. All imports of these types come from here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with clients in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# === STAGES ===

StageName = Literal[
    "promptOptimization",
    "imageGeneration",
    "imageToThreeD",
    "textureGeneration",
    "rigging",
    "vertexColorExtraction",
]

STAGE_ORDER: tuple[StageName, ...] = (
    "promptOptimization",
    "imageGeneration",
    "imageToThreeD",
    "textureGeneration",
    "rigging",
    "vertexColorExtraction",
)

StageStatus = Literal["pending", "processing", "completed", "failed", "skipped"]
PipelineStatus = Literal["initializing", "processing", "completed", "failed"]

TERMINAL_STAGE_STATUSES: frozenset[str] = frozenset({"completed", "failed", "skipped"})
TERMINAL_PIPELINE_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

AVATAR_TYPES: frozenset[str] = frozenset({"character", "avatar"})


# === REQUEST CONFIG ===


class MaterialPreset(WireModel):
    """Material style applied by the retexture provider."""

    id: str
    display_name: str = ""
    name: str | None = None
    category: str | None = None
    tier: int | str | None = None
    color: str | None = None
    style_prompt: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.id


class RiggingOptions(WireModel):
    height_meters: float | None = None


class PipelineConfig(WireModel):
    """Immutable request configuration for one pipeline run."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True,
    )

    asset_id: str
    description: str
    type: str
    name: str | None = None
    subtype: str | None = None
    style: str | None = None
    generation_type: Literal["item", "avatar"] | None = None

    use_gpt4_enhancement: bool = Field(default=True, alias="useGPT4Enhancement")
    enable_retexturing: bool = False
    material_presets: list[MaterialPreset] = Field(default_factory=list)
    enable_rigging: bool = False
    rigging_options: RiggingOptions | None = None
    enable_vertex_colors: bool = False
    character_height: float | None = None

    @property
    def is_avatar(self) -> bool:
        """Character-like classes need a T-pose reference and can be rigged."""
        return self.generation_type == "avatar" or self.type.lower() in AVATAR_TYPES

    @property
    def wants_variants(self) -> bool:
        return self.enable_retexturing and len(self.material_presets) > 0

    @property
    def wants_rigging(self) -> bool:
        return self.enable_rigging and self.is_avatar

    @property
    def rig_height(self) -> float | None:
        if self.rigging_options is not None:
            return self.rigging_options.height_meters
        return None


# === STAGE RESULTS ===


class PromptEnhancement(WireModel):
    """Result of prompt enhancement (always produced, possibly a fallback)."""

    original_prompt: str
    optimized_prompt: str
    model: str | None = None
    keywords: list[str] = Field(default_factory=list)
    diagnostic_error: str | None = None


class ImageResult(WireModel):
    image_url: str
    prompt: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class ConversionResult(WireModel):
    """Output of the image-to-3D stage."""

    task_id: str
    model_url: str
    local_path: str
    raw_path: str
    polycount: int | None = None
    normalized: bool = False
    dimensions: dict[str, Any] | None = None


class VariantRecord(WireModel):
    id: str
    display_name: str
    success: bool
    model_url: str | None = None
    error: str | None = None


class TextureResult(WireModel):
    variants: list[VariantRecord] = Field(default_factory=list)
    total_variants: int = 0

    @property
    def succeeded(self) -> list[VariantRecord]:
        return [v for v in self.variants if v.success]


class RiggingResult(WireModel):
    task_id: str
    animations: dict[str, str] = Field(default_factory=dict)
    rest_pose_path: str | None = None


class BrightnessRange(BaseModel):
    min: float
    max: float


class ColorSummary(WireModel):
    dominant_color: str
    color_palette: list[str]
    color_map: dict[str, int]
    average_color: str
    brightness_range: BrightnessRange
    source: Literal["materials", "filename"] = "materials"


StageResult = Union[
    PromptEnhancement,
    ImageResult,
    ConversionResult,
    TextureResult,
    RiggingResult,
    ColorSummary,
]

# Result type each stage must produce on completion.
STAGE_RESULT_TYPES: dict[str, type[BaseModel]] = {
    "promptOptimization": PromptEnhancement,
    "imageGeneration": ImageResult,
    "imageToThreeD": ConversionResult,
    "textureGeneration": TextureResult,
    "rigging": RiggingResult,
    "vertexColorExtraction": ColorSummary,
}


# === PIPELINE VIEW ===


class StageState(WireModel):
    """Status of a single stage."""

    status: StageStatus = "pending"
    progress: int = 0
    result: StageResult | None = None
    error: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STAGE_STATUSES


class FinalAsset(WireModel):
    """Descriptor of the finished asset, assembled on completion."""

    id: str
    name: str | None = None
    model_url: str
    concept_art_url: str
    variants: list[VariantRecord] = Field(default_factory=list)
    rest_pose_path: str | None = None


class PipelineSnapshot(WireModel):
    """Immutable copy of a pipeline's state, returned to status pollers."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True,
    )

    id: str
    status: PipelineStatus
    progress: int
    stages: dict[str, StageState]
    results: dict[str, StageResult] = Field(default_factory=dict)
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    final_asset: FinalAsset | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PIPELINE_STATUSES
