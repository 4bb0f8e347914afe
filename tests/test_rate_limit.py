import pytest
from fastapi import HTTPException

from src.gdp_insights.security import rate_limit


LIMITS = dict(limit_env="TEST_LIMIT", window_env="TEST_WINDOW_SEC", default_limit=2, default_window_seconds=60)


@pytest.fixture(autouse=True)
def _enabled(monkeypatch):
    monkeypatch.setenv("GDP_RATE_LIMIT_DISABLED", "0")


def test_blocks_after_limit_within_window():
    rate_limit.rate_limit_action("k", "me", **LIMITS)
    rate_limit.rate_limit_action("k", "me", **LIMITS)
    with pytest.raises(rate_limit.RateLimitExceeded) as info:
        rate_limit.rate_limit_action("k", "me", **LIMITS)
    assert 1 <= info.value.retry_after_seconds <= 60


def test_counters_are_per_action_and_caller():
    for _ in range(2):
        rate_limit.rate_limit_action("k", "me", **LIMITS)
    rate_limit.rate_limit_action("k", "someone-else", **LIMITS)
    rate_limit.rate_limit_action("other", "me", **LIMITS)


def test_env_overrides_limit(monkeypatch):
    monkeypatch.setenv("TEST_LIMIT", "1")
    rate_limit.rate_limit_action("k", "me", **LIMITS)
    with pytest.raises(rate_limit.RateLimitExceeded):
        rate_limit.rate_limit_action("k", "me", **LIMITS)


def test_invalid_env_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("TEST_LIMIT", "zero")
    for _ in range(2):
        rate_limit.rate_limit_action("k", "me", **LIMITS)
    with pytest.raises(rate_limit.RateLimitExceeded):
        rate_limit.rate_limit_action("k", "me", **LIMITS)


def test_enforce_raises_429_with_retry_after():
    for _ in range(2):
        rate_limit.enforce("k", "me", "Slow down.", **LIMITS)
    with pytest.raises(HTTPException) as info:
        rate_limit.enforce("k", "me", "Slow down.", **LIMITS)
    assert info.value.status_code == 429
    assert info.value.detail == "Slow down."
    assert int(info.value.headers["Retry-After"]) >= 1


def test_disabled_flag_skips_counting(monkeypatch):
    monkeypatch.setenv("GDP_RATE_LIMIT_DISABLED", "true")
    for _ in range(5):
        rate_limit.rate_limit_action("k", "me", **LIMITS)


def test_reset_clears_windows():
    for _ in range(2):
        rate_limit.rate_limit_action("k", "me", **LIMITS)
    rate_limit.reset_rate_limits()
    rate_limit.rate_limit_action("k", "me", **LIMITS)
