"""DemoCollaborator: deterministic stand-in used for degraded responses."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from styledna.collaborator._protocol import GeneratedArtwork
from styledna.refine import is_locked
from styledna.types import Analysis, Composition, Palette, RecommendedSettings, Refinement, Variable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from styledna.types import GenerationSettings, PreserveMode

DEMO_IMAGE_URL = "https://picsum.photos/seed/styledna/1024/1024"
REFINED_SUFFIX = " (refined)"

DEMO_ANALYSIS = Analysis(
    style_dna="cinematic moody lighting, high contrast, desaturated colors, film grain texture, shallow depth of field",
    prompt_template="{subject} in {scene}, {lighting}, {camera}, {mood} mood, {palette}, {details}",
    variables=(
        Variable(
            key="style_dna",
            label="Style DNA",
            kind="text",
            suggested_value="cinematic moody lighting, high contrast, desaturated colors, film grain texture",
            confidence=0.95,
            locked=True,
        ),
        Variable(
            key="subject", label="Subject", kind="text", suggested_value="a lone figure in a coat", confidence=0.9
        ),
        Variable(key="scene", label="Scene", kind="text", suggested_value="a rain-soaked city street", confidence=0.85),
        Variable(
            key="lighting",
            label="Lighting",
            kind="text",
            suggested_value="neon signs and wet reflections",
            confidence=0.8,
        ),
        Variable(key="camera", label="Camera", kind="text", suggested_value="35mm, low angle", confidence=0.7),
        Variable(
            key="mood",
            label="Mood",
            kind="select",
            suggested_value="melancholic",
            confidence=0.75,
        ),
        Variable(key="palette", label="Palette", kind="text", suggested_value="teal and orange", confidence=0.8),
        Variable(key="details", label="Details", kind="text", suggested_value="light fog, film grain", confidence=0.6),
    ),
    negative_prompt="blurry, low quality, oversaturated, watermark, text",
    recommended_settings=RecommendedSettings(aspect_ratio="16:9", steps=50, guidance=7.5, notes="Demo analysis"),
    palette=Palette(name="Neon Noir", colors=("#0B1D26", "#1F4E5F", "#E07A2F", "#F2C14E", "#D9D9D9", "#3A3A3A")),
    composition=Composition(
        shot_type="medium shot", angle="low angle", focal_length_guess="35mm", framing="rule of thirds"
    ),
    warnings=("Demo mode: this analysis is sample data, not derived from your image.",),
)


class DemoCollaborator:
    """StyleCollaborator returning sample data without any network access."""

    def __init__(self, analysis: Analysis = DEMO_ANALYSIS, image_url: str = DEMO_IMAGE_URL) -> None:
        """Initialize with the sample analysis and placeholder image URL."""
        self._analysis = analysis
        self._image_url = image_url

    def analyze(self, image: bytes, preserve_mode: PreserveMode, *, media_type: str = "image/jpeg") -> Analysis:
        """Return the sample analysis."""
        return self._analysis

    def refine(
        self,
        image: bytes,
        preserve_mode: PreserveMode,
        locks: Mapping[str, bool],
        current_values: Mapping[str, str],
        *,
        media_type: str = "image/jpeg",
    ) -> Refinement:
        """Mark the suggestion of every unlocked variable as refined."""
        variables = tuple(
            replace(
                variable,
                suggested_value=current_values.get(variable.key, variable.suggested_value) + REFINED_SUFFIX,
            )
            for variable in self._analysis.variables
            if not is_locked(variable.key, locks)
        )
        return Refinement(variables=variables)

    def generate(self, final_prompt: str, negative_prompt: str, settings: GenerationSettings) -> GeneratedArtwork:
        """Return the placeholder image URL."""
        return GeneratedArtwork(
            image_url=self._image_url,
            revised_prompt="Demo mode: this is a placeholder image. Real generation requires OpenAI API access.",
        )
