"""External AI collaborators for styledna."""

from styledna.collaborator._demo import DEMO_ANALYSIS, DemoCollaborator
from styledna.collaborator._openai import (
    OpenAICollaborator,
    parse_analysis,
    parse_generation,
    parse_refinement,
    plan_analyze,
    plan_generate,
    plan_refine,
    size_for,
)
from styledna.collaborator._protocol import GeneratedArtwork, StyleCollaborator

__all__ = [
    "DEMO_ANALYSIS",
    "DemoCollaborator",
    "GeneratedArtwork",
    "OpenAICollaborator",
    "StyleCollaborator",
    "parse_analysis",
    "parse_generation",
    "parse_refinement",
    "plan_analyze",
    "plan_generate",
    "plan_refine",
    "size_for",
]
