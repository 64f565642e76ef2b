"""Lock-aware merge of refined variables into an existing analysis."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from styledna.types import is_pinned

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from styledna.types import Analysis, Refinement, Variable


def is_locked(key: str, locks: Mapping[str, bool]) -> bool:
    """Return whether ``key`` must survive a refinement unchanged."""
    return is_pinned(key) or bool(locks.get(key, False))


def merge_refinement(
    original: Analysis,
    refined: Iterable[Variable],
    locks: Mapping[str, bool],
    *,
    template: str | None = None,
) -> Analysis:
    """Merge refined variables into ``original`` without touching locked ones.

    For each original variable: a locked (or pinned) variable is kept; an
    unlocked one is replaced by the refined variable with the same key, or kept
    when the refinement omitted it. Refined keys that the original does not
    have are ignored, so the key sequence never changes. A non-empty
    ``template`` replaces the prompt template.
    """
    by_key = {variable.key: variable for variable in refined}
    merged = tuple(
        variable if is_locked(variable.key, locks) else by_key.get(variable.key, variable)
        for variable in original.variables
    )
    return replace(
        original,
        variables=merged,
        prompt_template=template or original.prompt_template,
    )


def apply_refinement(original: Analysis, refinement: Refinement, locks: Mapping[str, bool]) -> Analysis:
    """Merge a collaborator Refinement into ``original``."""
    return merge_refinement(original, refinement.variables, locks, template=refinement.prompt_template)
