"""EditSession: immutable editing state for one reference image."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from styledna.prompt import diff_summary
from styledna.refine import apply_refinement, is_locked
from styledna.types import GenerationSettings, is_pinned

if TYPE_CHECKING:
    from styledna.types import Analysis, PreserveMode, Quality, Refinement


def _freeze(mapping: Mapping[str, object]) -> Mapping[str, object]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class GeneratedEntry:
    """One generated image recorded in the session history."""

    image_id: str
    url: str
    revised_prompt: str | None = None
    diff_summary: str = "No changes"
    degraded: bool = False


@dataclass(frozen=True, slots=True)
class EditSession:
    """Snapshot of what the user is editing.

    Every operation returns a new session; the instance itself never changes.
    """

    image_id: str | None = None
    preview_url: str | None = None
    analysis: Analysis | None = None
    values: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    locks: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))
    negative_prompt: str = ""
    preserve_mode: PreserveMode = "style"
    aspect_ratio: str = "1:1"
    quality: Quality = "standard"
    seed: str = ""
    generated: tuple[GeneratedEntry, ...] = ()

    def __post_init__(self) -> None:
        """Freeze mutable containers."""
        object.__setattr__(self, "values", _freeze(self.values))
        object.__setattr__(self, "locks", _freeze(self.locks))
        object.__setattr__(self, "generated", tuple(self.generated))

    def with_image(self, image_id: str | None, preview_url: str | None) -> EditSession:
        """Select a new reference image."""
        return replace(self, image_id=image_id, preview_url=preview_url)

    def with_analysis(self, analysis: Analysis | None) -> EditSession:
        """Adopt an analysis: values from suggestions, locks from variable flags."""
        if analysis is None:
            return replace(self, analysis=None, values={}, locks={})
        locks = {variable.key: variable.locked for variable in analysis.variables}
        return replace(
            self,
            analysis=analysis,
            values=analysis.suggested_values(),
            locks=locks,
            negative_prompt=analysis.negative_prompt,
            aspect_ratio=analysis.recommended_settings.aspect_ratio,
        )

    def with_value(self, key: str, value: str) -> EditSession:
        """Set the current value of one variable."""
        return replace(self, values={**self.values, key: value})

    def toggle_lock(self, key: str) -> EditSession:
        """Flip the lock of ``key``; pinned keys stay locked."""
        if is_pinned(key):
            return self
        return replace(self, locks={**self.locks, key: not self.locks.get(key, False)})

    def with_negative_prompt(self, negative_prompt: str) -> EditSession:
        return replace(self, negative_prompt=negative_prompt)

    def with_preserve_mode(self, preserve_mode: PreserveMode) -> EditSession:
        return replace(self, preserve_mode=preserve_mode)

    def with_aspect_ratio(self, aspect_ratio: str) -> EditSession:
        return replace(self, aspect_ratio=aspect_ratio)

    def with_quality(self, quality: Quality) -> EditSession:
        return replace(self, quality=quality)

    def with_seed(self, seed: str) -> EditSession:
        return replace(self, seed=seed)

    def apply_refinement(self, refinement: Refinement) -> EditSession:
        """Merge refined suggestions and reset values of unlocked variables to them."""
        if self.analysis is None:
            msg = "Cannot refine before an analysis is available."
            raise ValueError(msg)
        merged = apply_refinement(self.analysis, refinement, self.locks)
        values = dict(self.values)
        for variable in merged.variables:
            if not is_locked(variable.key, self.locks):
                values[variable.key] = variable.suggested_value
        return replace(self, analysis=merged, values=values)

    def with_generated(self, entry: GeneratedEntry) -> EditSession:
        """Append a generated image to the history."""
        return replace(self, generated=(*self.generated, entry))

    def reset(self) -> EditSession:
        """Return a fresh session."""
        return EditSession()

    def locked_keys(self) -> tuple[str, ...]:
        """Return keys that a refinement must not change, in variable order."""
        if self.analysis is None:
            return ()
        return tuple(key for key in self.analysis.keys() if is_locked(key, self.locks))

    def diff_summary(self) -> str:
        """Describe which variables the user changed from their suggestions."""
        if self.analysis is None:
            return "No changes"
        return diff_summary(self.analysis.variables, self.values)

    def generation_settings(self) -> GenerationSettings:
        """Return the output settings for a generation request."""
        return GenerationSettings(aspect_ratio=self.aspect_ratio, quality=self.quality, seed=self.seed or None)
