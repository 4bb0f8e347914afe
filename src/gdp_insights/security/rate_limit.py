from __future__ import annotations

"""Fixed-window, in-memory rate limiting keyed by (action, caller).

Limits are read from the environment on every call so operators (and tests)
can tune them without a restart. Set GDP_RATE_LIMIT_DISABLED=1 to switch the
limiter off; it is off by default under pytest.
"""

import os
import time
from threading import Lock
from typing import Dict, Tuple

from fastapi import HTTPException, status


class RateLimitExceeded(Exception):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("Rate limit exceeded")
        self.retry_after_seconds = retry_after_seconds


class FixedWindowLimiter:
    """Counts hits per key inside a window that starts at the first hit."""

    def __init__(self) -> None:
        self._lock = Lock()
        # key -> (hits, window closes at, monotonic seconds)
        self._windows: Dict[Tuple[str, str], Tuple[int, float]] = {}

    def hit(self, key: Tuple[str, str], limit: int, window_seconds: int) -> None:
        now = time.monotonic()
        with self._lock:
            hits, closes_at = self._windows.get(key, (0, 0.0))
            if closes_at <= now:
                self._windows[key] = (1, now + window_seconds)
                return
            if hits >= limit:
                raise RateLimitExceeded(max(int(closes_at - now), 1))
            self._windows[key] = (hits + 1, closes_at)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


_LIMITER = FixedWindowLimiter()


def _env_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _rate_limiting_disabled() -> bool:
    flag = os.getenv("GDP_RATE_LIMIT_DISABLED")
    if flag is not None:
        return flag.lower() in {"1", "true", "yes", "on"}
    return bool(os.getenv("PYTEST_CURRENT_TEST"))


def rate_limit_action(
    key: str,
    identifier: str,
    *,
    limit_env: str,
    window_env: str,
    default_limit: int,
    default_window_seconds: int,
) -> None:
    """Count one occurrence of ``key`` for ``identifier``.

    Raises:
        RateLimitExceeded: the caller used up its window; ``retry_after_seconds``
        says when it reopens.
    """
    if _rate_limiting_disabled():
        return
    _LIMITER.hit(
        (key, identifier),
        _env_int(limit_env, default_limit),
        _env_int(window_env, default_window_seconds),
    )


def enforce(key: str, identifier: str, message: str, **limits) -> None:
    """Like :func:`rate_limit_action` but raises HTTP 429 with Retry-After."""
    try:
        rate_limit_action(key, identifier, **limits)
    except RateLimitExceeded as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=message,
            headers={"Retry-After": str(exc.retry_after_seconds)},
        ) from exc


def reset_rate_limits() -> None:
    _LIMITER.clear()
