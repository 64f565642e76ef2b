"""Tests for the fixed-window RateLimiter."""

from datetime import timedelta

import pytest

from styledna.stores import RateLimiter


def test_allows_up_to_max_requests(clock) -> None:
    limiter = RateLimiter(max_requests=3, window=timedelta(seconds=60), clock=clock)
    decisions = [limiter.check_and_consume("client") for _ in range(3)]
    assert [decision.allowed for decision in decisions] == [True, True, True]
    assert [decision.remaining for decision in decisions] == [2, 1, 0]


def test_denies_after_max_requests(clock) -> None:
    limiter = RateLimiter(max_requests=2, window=timedelta(seconds=60), clock=clock)
    limiter.check_and_consume("client")
    limiter.check_and_consume("client")
    denied = limiter.check_and_consume("client")
    assert denied.allowed is False
    assert denied.remaining == 0
    assert denied.reset_at == clock.now + timedelta(seconds=60)


def test_default_limit_is_ten_per_minute(clock) -> None:
    limiter = RateLimiter(clock=clock)
    assert limiter.max_requests == 10
    assert limiter.window == timedelta(seconds=60)
    allowed = [limiter.check_and_consume("c").allowed for _ in range(11)]
    assert allowed == [True] * 10 + [False]


def test_clients_are_counted_separately(clock) -> None:
    limiter = RateLimiter(max_requests=1, clock=clock)
    assert limiter.check_and_consume("a").allowed
    assert limiter.check_and_consume("b").allowed
    assert not limiter.check_and_consume("a").allowed


def test_new_window_after_reset(clock) -> None:
    limiter = RateLimiter(max_requests=1, window=timedelta(seconds=60), clock=clock)
    limiter.check_and_consume("client")
    clock.advance(seconds=60)
    assert not limiter.check_and_consume("client").allowed
    clock.advance(seconds=1)
    fresh = limiter.check_and_consume("client")
    assert fresh.allowed
    assert fresh.remaining == 0
    assert fresh.reset_at == clock.now + timedelta(seconds=60)


def test_denied_requests_do_not_extend_the_window(clock) -> None:
    limiter = RateLimiter(max_requests=1, window=timedelta(seconds=60), clock=clock)
    first = limiter.check_and_consume("client")
    clock.advance(seconds=30)
    denied = limiter.check_and_consume("client")
    assert denied.reset_at == first.reset_at


def test_retry_after_counts_down(clock) -> None:
    limiter = RateLimiter(max_requests=1, window=timedelta(seconds=60), clock=clock)
    limiter.check_and_consume("client")
    clock.advance(seconds=45)
    denied = limiter.check_and_consume("client")
    assert limiter.retry_after(denied) == 15.0


def test_sweep_drops_idle_windows(clock) -> None:
    limiter = RateLimiter(max_requests=1, window=timedelta(seconds=60), clock=clock)
    limiter.check_and_consume("client")
    clock.advance(seconds=61)
    assert limiter.sweep() == ("client",)


def test_rejects_zero_max_requests() -> None:
    with pytest.raises(ValueError, match="max_requests"):
        RateLimiter(max_requests=0)


def test_default_limit_sequence_and_fresh_window(clock) -> None:
    limiter = RateLimiter(clock=clock)
    remaining = [limiter.check_and_consume("c").remaining for _ in range(10)]
    assert remaining == list(range(9, -1, -1))
    assert not limiter.check_and_consume("c").allowed

    clock.advance(seconds=61)
    fresh = limiter.check_and_consume("c")
    assert fresh.allowed
    assert fresh.remaining == 9
