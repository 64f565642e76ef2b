"""Shared fixtures: a controllable clock and a sample analysis."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from styledna.types import Analysis, Composition, Palette, RecommendedSettings, Variable


class FakeClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _variable(key: str, value: str, *, locked: bool = False, kind: str = "text") -> Variable:
    return Variable(
        key=key,
        label=key.replace("_", " ").title(),
        kind=kind,  # type: ignore[arg-type]
        suggested_value=value,
        confidence=0.8,
        locked=locked,
    )


@pytest.fixture
def make_variable() -> Callable[..., Variable]:
    return _variable


@pytest.fixture
def analysis() -> Analysis:
    return Analysis(
        style_dna="soft watercolor washes, visible paper texture",
        prompt_template="{subject} in {scene}, {lighting}, {palette}",
        variables=(
            _variable("style_dna", "soft watercolor washes"),
            _variable("subject", "a red fox"),
            _variable("scene", "a snowy forest"),
            _variable("lighting", "overcast morning light"),
            _variable("palette", "muted blues and rust"),
            _variable("mood", "quiet", kind="select"),
        ),
        negative_prompt="photorealistic, harsh shadows",
        recommended_settings=RecommendedSettings(aspect_ratio="4:5", steps=30, guidance=6.0),
        palette=Palette(name="Winter Rust", colors=("#2E4057", "#B5651D", "#F4F1EA")),
        composition=Composition(shot_type="wide shot", angle="eye-level", framing="centered"),
    )
