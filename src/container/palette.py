# src/container/palette.py — v1
"""Color palette summary from GLB material definitions.

Reads base color factors from the JSON chunk. When a model carries no
materials, falls back to a palette keyed on material words in its filename.
"""

from __future__ import annotations

import logging
from pathlib import Path

from assetforge.container.glb import parse
from assetforge.core.models import BrightnessRange, ColorSummary

logger = logging.getLogger(__name__)

_DEFAULT_BASE_COLOR = (0.5, 0.5, 0.5)

# Ordered: first match in the filename wins.
MATERIAL_PALETTES: dict[str, list[str]] = {
    # Metals
    "bronze": ["#CD7F32", "#B87333", "#A0522D", "#8B4513"],
    "iron": ["#A8A8A8", "#909090", "#787878", "#606060"],
    "steel": ["#C0C0C0", "#A8A8A8", "#808080", "#696969"],
    "mithril": ["#3D5D8F", "#4169E1", "#4682B4", "#5F9EA0"],
    "adamant": ["#2F4F2F", "#355E3B", "#4A5C4A", "#5F6F5F"],
    "rune": ["#5F9EA0", "#4682B4", "#00CED1", "#48D1CC"],
    # Leathers
    "hard-leather": ["#654321", "#5D4E37", "#4B3621", "#3E2F23"],
    "studded-leather": ["#4A4A4A", "#8B4513", "#696969", "#2F2F2F"],
    "leather": ["#8B4513", "#A0522D", "#654321", "#704214"],
    "dragonhide": ["#228B22", "#006400", "#32CD32", "#3CB371"],
    # Woods
    "wood": ["#DEB887", "#D2691E", "#BC9A6A", "#A0522D"],
    "oak": ["#BC9A6A", "#A0522D", "#8B7355", "#6B4423"],
    "willow": ["#F5DEB3", "#FFE4B5", "#FFDEAD", "#F5E6D3"],
    "yew": ["#8B4513", "#A0522D", "#704214", "#5D3A1A"],
    "magic": ["#4B0082", "#6A0DAD", "#7B68EE", "#9370DB"],
}

_NEUTRAL_PALETTE = ["#888888", "#666666", "#444444", "#222222"]
_BASE_MODEL_PALETTE = ["#808080", "#999999", "#666666", "#B0B0B0"]


def rgb_to_hex(r: float, g: float, b: float) -> str:
    """Convert 0-1 float channels to a lowercase #rrggbb string."""

    def _channel(v: float) -> str:
        return f"{max(0, min(255, round(v * 255))):02x}"

    return "#" + _channel(r) + _channel(g) + _channel(b)


def _luminance(r: float, g: float, b: float) -> float:
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def _base_colors(doc: dict) -> list[tuple[float, float, float]]:
    colors: list[tuple[float, float, float]] = []
    for material in doc.get("materials") or []:
        pbr = material.get("pbrMetallicRoughness") or {}
        factor = pbr.get("baseColorFactor") or _DEFAULT_BASE_COLOR
        r, g, b = (float(c) for c in list(factor)[:3])
        colors.append((r, g, b))
    return colors


def summarize_colors(colors: list[tuple[float, float, float]]) -> ColorSummary:
    """Build a summary from a non-empty list of RGB triples."""
    palette: list[str] = []
    color_map: dict[str, int] = {}
    for r, g, b in colors:
        hex_color = rgb_to_hex(r, g, b)
        color_map[hex_color] = color_map.get(hex_color, 0) + 1
        if hex_color not in palette:
            palette.append(hex_color)

    n = len(colors)
    avg = (
        sum(c[0] for c in colors) / n,
        sum(c[1] for c in colors) / n,
        sum(c[2] for c in colors) / n,
    )
    lum = [_luminance(*c) for c in colors]
    return ColorSummary(
        dominant_color=max(palette, key=lambda h: color_map[h]),
        color_palette=palette,
        color_map=color_map,
        average_color=rgb_to_hex(*avg),
        brightness_range=BrightnessRange(min=round(min(lum), 4), max=round(max(lum), 4)),
        source="materials",
    )


def default_colors(model_name: str) -> ColorSummary:
    """Palette guessed from material words in a model filename."""
    filename = Path(model_name).name.lower()
    palette = _NEUTRAL_PALETTE
    for material, colors in MATERIAL_PALETTES.items():
        if material in filename:
            palette = colors
            break
    if "-base" in filename:
        palette = _BASE_MODEL_PALETTE

    return ColorSummary(
        dominant_color=palette[0],
        color_palette=list(palette),
        color_map={color: 1 for color in palette},
        average_color=palette[0],
        brightness_range=BrightnessRange(min=0.2, max=0.8),
        source="filename",
    )


def extract_palette(data: bytes, model_name: str) -> ColorSummary:
    """Summarize the colors of a GLB model.

    Raises:
        FormatError: If `data` is not a valid GLB container.
    """
    doc = parse(data).document()
    colors = _base_colors(doc)
    if not colors:
        logger.info("No materials in %s, using filename palette", model_name)
        return default_colors(model_name)
    return summarize_colors(colors)
