"""StyleCollaborator: protocol for the external multimodal AI service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from styledna.types import Analysis, GenerationSettings, PreserveMode, Refinement


@dataclass(frozen=True, slots=True)
class GeneratedArtwork:
    """Generation result: a downloadable URL, inline bytes, or both."""

    image_url: str | None = None
    revised_prompt: str | None = None
    image_data: bytes | None = None

    def __post_init__(self) -> None:
        """Require at least one way to obtain the image."""
        if not self.image_url and self.image_data is None:
            msg = "GeneratedArtwork needs image_url or image_data."
            raise ValueError(msg)


@runtime_checkable
class StyleCollaborator(Protocol):
    """Analyze, refine and generate images through an external AI service.

    Implementations raise ``CollaboratorError`` for every service failure so
    callers can decide on a degraded path by error kind.
    """

    def analyze(self, image: bytes, preserve_mode: PreserveMode, *, media_type: str = "image/jpeg") -> Analysis:
        """Derive a style analysis from a reference image."""
        ...

    def refine(
        self,
        image: bytes,
        preserve_mode: PreserveMode,
        locks: Mapping[str, bool],
        current_values: Mapping[str, str],
        *,
        media_type: str = "image/jpeg",
    ) -> Refinement:
        """Suggest new values for unlocked variables."""
        ...

    def generate(self, final_prompt: str, negative_prompt: str, settings: GenerationSettings) -> GeneratedArtwork:
        """Generate an image from an assembled prompt."""
        ...
