from datetime import timedelta

from styledna.stores import DEFAULT_ANALYSIS_TTL, AnalysisCache
from styledna.types import Analysis


def test_default_ttl_is_one_hour() -> None:
    assert DEFAULT_ANALYSIS_TTL == timedelta(minutes=60)
    assert AnalysisCache().ttl == DEFAULT_ANALYSIS_TTL


def test_put_get_and_replace(analysis: Analysis, clock) -> None:
    cache = AnalysisCache(clock=clock)
    cache.put("img.png", analysis)
    assert cache.get("img.png") is analysis

    updated = analysis.__class__.from_dict({**analysis.to_dict(), "negative_prompt": "neon"})
    cache.put("img.png", updated)
    assert cache.get("img.png") is updated


def test_analysis_expires(analysis: Analysis, clock) -> None:
    cache = AnalysisCache(ttl=timedelta(minutes=60), clock=clock)
    cache.put("img.png", analysis)
    clock.advance(minutes=61)
    assert cache.get("img.png") is None


def test_sweep_and_delete(analysis: Analysis, clock) -> None:
    cache = AnalysisCache(ttl=timedelta(seconds=5), clock=clock)
    cache.put("old.png", analysis)
    clock.advance(seconds=6)
    cache.put("new.png", analysis)
    assert cache.sweep() == ("old.png",)
    assert cache.delete("new.png") is True
    assert cache.get("new.png") is None


def test_analysis_present_at_59_minutes_absent_at_61(analysis: Analysis, clock) -> None:
    cache = AnalysisCache(clock=clock)
    cache.put("img.png", analysis)
    clock.advance(minutes=59)
    assert cache.get("img.png") is analysis
    clock.advance(minutes=2)
    assert cache.get("img.png") is None
