"""styledna: extract the style of a reference image and remix it into new prompts."""

import importlib.metadata as importlib_metadata

from styledna.collaborator import DemoCollaborator, GeneratedArtwork, OpenAICollaborator, StyleCollaborator
from styledna.config import Settings
from styledna.errors import CollaboratorError, NotFoundError, RateLimitError, StyleDnaError, ValidationError
from styledna.plan import ExcludedItem, RequestPlan
from styledna.prompt import assemble_prompt, bind, diff_summary
from styledna.refine import apply_refinement, merge_refinement
from styledna.service import GeneratedImage, Outcome, StyleStudio
from styledna.session import EditSession, GeneratedEntry
from styledna.stores import AnalysisCache, FileImageStore, ImageStore, InMemoryImageStore, RateLimiter, TTLStore
from styledna.types import (
    Analysis,
    Composition,
    GenerationSettings,
    Palette,
    PreserveMode,
    RecommendedSettings,
    Refinement,
    Variable,
)


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("styledna")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "Analysis",
    "AnalysisCache",
    "CollaboratorError",
    "Composition",
    "DemoCollaborator",
    "EditSession",
    "ExcludedItem",
    "FileImageStore",
    "GeneratedArtwork",
    "GeneratedEntry",
    "GeneratedImage",
    "GenerationSettings",
    "ImageStore",
    "InMemoryImageStore",
    "NotFoundError",
    "OpenAICollaborator",
    "Outcome",
    "Palette",
    "PreserveMode",
    "RateLimitError",
    "RateLimiter",
    "RecommendedSettings",
    "Refinement",
    "RequestPlan",
    "Settings",
    "StyleCollaborator",
    "StyleDnaError",
    "StyleStudio",
    "TTLStore",
    "ValidationError",
    "Variable",
    "apply_refinement",
    "assemble_prompt",
    "bind",
    "diff_summary",
    "merge_refinement",
]
