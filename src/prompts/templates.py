# src/prompts/templates.py — v1
"""Prompt templates for 3D-asset prompt enhancement."""

from __future__ import annotations

import re

T_POSE_PHRASE = "standing in T-pose with arms stretched out horizontally"

DEFAULT_STYLE_HINT = "low-poly RuneScape"
FALLBACK_STYLE = "Low-poly RuneScape 2007"

_AVATAR_INSTRUCTION = (
    "CRITICAL for characters: The character MUST be in a T-pose (arms stretched out "
    "horizontally, legs slightly apart) for proper rigging. Always add \"standing in "
    "T-pose\" to the description."
)

# Vocabulary reported as keywords, grouped by what it describes.
KEYWORD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(bronze|steel|iron|mithril|adamant|rune)\b", re.IGNORECASE),
    re.compile(r"\b(sword|shield|bow|staff|armor|helmet)\b", re.IGNORECASE),
    re.compile(r"\b(leather|metal|wood|crystal|bone)\b", re.IGNORECASE),
    re.compile(r"\b(low-poly|high-poly|realistic|stylized)\b", re.IGNORECASE),
)


def build_system_prompt(style: str | None, is_avatar: bool) -> str:
    """System instruction for the enhancement completion."""
    lines = [
        "You are an expert at optimizing prompts for 3D asset generation.",
        "Your task is to enhance the user's description to create better results "
        "with image generation and 3D conversion.",
    ]
    if is_avatar:
        lines.append(_AVATAR_INSTRUCTION)
    lines += [
        "Focus on:",
        "- Clear, specific visual details",
        "- Material and texture descriptions",
        "- Geometric shape and form",
        f"- Style consistency (especially for {style or DEFAULT_STYLE_HINT} style)",
    ]
    if is_avatar:
        lines.append("- T-pose stance for rigging compatibility")
    lines.append("Keep the enhanced prompt concise but detailed.")
    return "\n".join(lines)


def build_user_prompt(asset_type: str, description: str) -> str:
    return f'Enhance this {asset_type} asset description for 3D generation: "{description}"'


def fallback_prompt(description: str, style: str | None) -> str:
    """Deterministic prompt used whenever the completion is unavailable."""
    return f"{description}. {style or FALLBACK_STYLE} style, clean geometry, game-ready 3D asset."


def with_t_pose(prompt: str) -> str:
    return f"{prompt} {T_POSE_PHRASE}"


def extract_keywords(prompt: str) -> list[str]:
    """Lowercased vocabulary hits, de-duplicated in first-seen order."""
    keywords: list[str] = []
    for pattern in KEYWORD_PATTERNS:
        for match in pattern.findall(prompt):
            word = match.lower()
            if word not in keywords:
                keywords.append(word)
    return keywords
