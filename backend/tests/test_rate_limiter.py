# backend/tests/test_rate_limiter.py
from rate_limiter import RateLimiter


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_window_counts_and_blocks():
    clock = Clock()
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
    first = limiter.check("ip")
    assert first.allowed and first.remaining == 1 and first.reset_at == 1060.0
    assert limiter.check("ip").remaining == 0
    blocked = limiter.check("ip")
    assert not blocked.allowed and blocked.remaining == 0
    assert limiter.remaining("other") == 2


def test_window_resets_after_expiry():
    clock = Clock()
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.check("ip")
    assert not limiter.check("ip").allowed
    clock.now += 61
    assert limiter.check("ip").allowed


def test_sweep_drops_only_expired():
    clock = Clock()
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    limiter.check("old")
    clock.now += 30
    limiter.check("new")
    clock.now += 31
    assert limiter.sweep() == 1
    assert len(limiter) == 1
    assert limiter.config() == {"window_seconds": 60, "max_requests": 5}


def test_zero_quota_allows_nothing():
    clock = Clock()
    limiter = RateLimiter(max_requests=0, window_seconds=60, clock=clock)
    status = limiter.check("ip")
    assert not status.allowed
    assert status.remaining == 0
    assert status.reset_at == 1060.0
    assert limiter.remaining("ip") == 0
    assert len(limiter) == 0
