"""Unit tests for the fixed-window RateLimiter."""

import pytest

from search_backend.application.services.rate_limiter import RateLimiter, client_key
from search_backend.domain.exceptions import RateLimitExceededError


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_requests_within_limit_pass():
    limiter = RateLimiter(3, 60, clock=FakeClock())

    assert limiter.hit("1.1.1.1") == 2
    assert limiter.hit("1.1.1.1") == 1
    assert limiter.hit("1.1.1.1") == 0


def test_exceeding_limit_raises_with_retry_after():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)
    limiter.hit("client")
    limiter.hit("client")

    clock.now = 10
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.hit("client")
    assert exc_info.value.retry_after == 50


def test_retry_after_is_at_least_one_second():
    clock = FakeClock()
    limiter = RateLimiter(1, 60, clock=clock)
    limiter.hit("client")

    clock.now = 59.9
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.hit("client")
    assert exc_info.value.retry_after == 1


def test_window_resets():
    clock = FakeClock()
    limiter = RateLimiter(1, 60, clock=clock)
    limiter.hit("client")

    clock.now = 60
    assert limiter.hit("client") == 0


def test_clients_are_counted_separately():
    limiter = RateLimiter(1, 60, clock=FakeClock())
    limiter.hit("a")
    limiter.hit("b")
    with pytest.raises(RateLimitExceededError):
        limiter.hit("a")


def test_disabled_limiter_never_raises():
    limiter = RateLimiter(1, 60, enabled=False)
    for _ in range(5):
        limiter.hit("client")


def test_custom_message():
    limiter = RateLimiter(0, 60, message="Discourse API rate limit exceeded", clock=FakeClock())
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.hit("client")
    assert exc_info.value.message == "Discourse API rate limit exceeded"


def test_prune_forgets_elapsed_windows():
    clock = FakeClock()
    limiter = RateLimiter(5, 60, clock=clock)
    limiter.hit("old")
    clock.now = 30
    limiter.hit("new")

    clock.now = 70
    assert limiter.prune() == 1


def test_hit_drops_elapsed_windows_of_other_clients():
    clock = FakeClock()
    limiter = RateLimiter(5, 60, clock=clock)

    for index in range(1000):
        clock.now = index * 120
        limiter.hit(f"10.0.{index // 256}.{index % 256}")

    assert limiter.tracked_clients == 1


def test_clients_active_in_current_window_survive_sweep():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)
    limiter.hit("stale")
    clock.now = 40
    limiter.hit("active")
    limiter.hit("active")

    clock.now = 65
    limiter.hit("newcomer")

    assert limiter.tracked_clients == 2
    with pytest.raises(RateLimitExceededError):
        limiter.hit("active")


@pytest.mark.parametrize(
    "headers, peer, expected",
    [
        ({"x-forwarded-for": "1.1.1.1, 2.2.2.2", "x-real-ip": "3.3.3.3"}, "9.9.9.9", "1.1.1.1"),
        ({"x-vercel-forwarded-for": "4.4.4.4", "x-forwarded-for": "1.1.1.1"}, None, "4.4.4.4"),
        ({"cf-connecting-ip": "5.5.5.5", "x-real-ip": "3.3.3.3"}, None, "5.5.5.5"),
        ({"x-real-ip": "3.3.3.3"}, None, "3.3.3.3"),
        ({}, "9.9.9.9", "9.9.9.9"),
        ({}, None, "unknown"),
    ],
)
def test_client_key(headers, peer, expected):
    assert client_key(headers, peer) == expected
