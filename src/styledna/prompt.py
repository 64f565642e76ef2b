"""Template binding and structured prompt assembly."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from styledna.types import preserves_composition, preserves_palette

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from styledna.types import PreserveMode, Variable

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

# Sections emitted after the style and preserve-mode sections, in order.
DETAIL_SECTIONS: tuple[tuple[str, str], ...] = (
    ("subject", "SUBJECT"),
    ("scene", "SCENE"),
    ("lighting", "LIGHTING"),
    ("camera", "CAMERA"),
    ("mood", "MOOD"),
    ("details", "DETAILS"),
)


def bind(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{key}`` placeholders with ``values[key]``.

    Placeholders without a value are left verbatim.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, template)


def assemble_prompt(
    style_dna: str,
    values: Mapping[str, str],
    preserve_mode: PreserveMode,
    negative_prompt: str,
) -> str:
    """Assemble the labeled generation prompt.

    Order is fixed: style descriptor, palette and composition (only when the
    preserve mode asks for them), subject, scene, lighting, camera, mood,
    details, negative prompt. Empty values produce no section.
    """
    sections = [f"STYLE_DNA: {style_dna}"]

    palette = values.get("palette")
    if preserves_palette(preserve_mode) and palette:
        sections.append(f"PALETTE: {palette}")

    composition = values.get("composition")
    if preserves_composition(preserve_mode) and composition:
        sections.append(f"COMPOSITION: {composition}")

    for key, label in DETAIL_SECTIONS:
        value = values.get(key)
        if value:
            sections.append(f"{label}: {value}")

    if negative_prompt:
        sections.append(f"NEGATIVE: {negative_prompt}")

    return "\n".join(sections)


def diff_summary(variables: Iterable[Variable], values: Mapping[str, str]) -> str:
    """Describe which variables differ from their suggested values."""
    changed = [
        f"{variable.label}: changed"
        for variable in variables
        if variable.key in values and values[variable.key] != variable.suggested_value
    ]
    return ", ".join(changed) or "No changes"
