"""Tests for the lock-aware refinement merge."""

from dataclasses import replace

from styledna.refine import apply_refinement, is_locked, merge_refinement
from styledna.types import STYLE_DNA_KEY, Analysis, Refinement


def test_is_locked_respects_pin_and_locks() -> None:
    assert is_locked(STYLE_DNA_KEY, {})
    assert is_locked(STYLE_DNA_KEY, {STYLE_DNA_KEY: False})
    assert is_locked("subject", {"subject": True})
    assert not is_locked("subject", {"subject": False})
    assert not is_locked("subject", {})


def test_merge_replaces_unlocked_and_keeps_locked(analysis: Analysis, make_variable) -> None:
    refined = [
        make_variable("subject", "a grey wolf"),
        make_variable("scene", "a frozen lake"),
    ]
    merged = merge_refinement(analysis, refined, {"scene": True})

    assert merged.variable("subject").suggested_value == "a grey wolf"  # type: ignore[union-attr]
    assert merged.variable("scene") == analysis.variable("scene")


def test_merge_never_changes_style_dna(analysis: Analysis, make_variable) -> None:
    refined = [make_variable(STYLE_DNA_KEY, "oil paint impasto")]
    merged = merge_refinement(analysis, refined, {STYLE_DNA_KEY: False})
    assert merged.variable(STYLE_DNA_KEY) == analysis.variable(STYLE_DNA_KEY)


def test_merge_keeps_key_sequence(analysis: Analysis, make_variable) -> None:
    refined = [make_variable("camera", "85mm"), make_variable("mood", "eerie", kind="select")]
    merged = merge_refinement(analysis, refined, {})
    assert merged.keys() == analysis.keys()
    assert merged.variable("camera") is None
    assert merged.variable("mood").suggested_value == "eerie"  # type: ignore[union-attr]


def test_merge_keeps_variables_missing_from_refinement(analysis: Analysis) -> None:
    merged = merge_refinement(analysis, [], {})
    assert merged.variables == analysis.variables


def test_merge_template_override(analysis: Analysis) -> None:
    assert merge_refinement(analysis, [], {}, template="{subject}").prompt_template == "{subject}"
    assert merge_refinement(analysis, [], {}, template="").prompt_template == analysis.prompt_template
    assert merge_refinement(analysis, [], {}, template=None).prompt_template == analysis.prompt_template


def test_merge_leaves_other_fields_untouched(analysis: Analysis, make_variable) -> None:
    merged = merge_refinement(analysis, [make_variable("subject", "a hare")], {})
    assert replace(merged, variables=analysis.variables) == analysis


def test_apply_refinement_uses_template_and_variables(analysis: Analysis, make_variable) -> None:
    refinement = Refinement(variables=(make_variable("lighting", "golden hour"),), prompt_template="{lighting}")
    merged = apply_refinement(analysis, refinement, {})
    assert merged.prompt_template == "{lighting}"
    assert merged.variable("lighting").suggested_value == "golden hour"  # type: ignore[union-attr]
