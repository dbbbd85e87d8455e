"""Fixed-window rate limiting keyed by caller identity.

Counters live in process memory; nothing survives a restart. All mutation
goes through ``RateLimitStore.hit`` so the read-check-increment sequence
is one critical section, even when several event loops or threads share a
store.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

_PRUNE_EVERY = 100


@dataclass(frozen=True)
class RateLimitPolicy:
    """``max_requests`` admitted per ``window_seconds`` per key."""

    window_seconds: float
    max_requests: int
    name: str = "API"


@dataclass
class RateLimitWindow:
    count: int
    window_start: float
    window_seconds: float
    max_requests: int

    @property
    def reset_at(self) -> float:
        return self.window_start + self.window_seconds

    def expired(self, now: float) -> bool:
        return now >= self.reset_at


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single check. ``reset_at`` is epoch seconds."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0
    policy_name: str = "API"

    @property
    def message(self) -> str:
        if self.allowed:
            return ""
        return f"Rate limit exceeded for {self.policy_name}. Try again later."


API = RateLimitPolicy(window_seconds=15 * 60, max_requests=100, name="API")
SEARCH = RateLimitPolicy(window_seconds=60, max_requests=10, name="search")
CRAWL = RateLimitPolicy(window_seconds=5 * 60, max_requests=5, name="crawl")

PRESETS: dict[str, RateLimitPolicy] = {"api": API, "search": SEARCH, "crawl": CRAWL}


def preset_from_settings(name: str, settings) -> RateLimitPolicy:
    """Build a preset policy using the window/limit values from settings."""
    key = name.lower()
    if key not in PRESETS:
        raise KeyError(f"Unknown rate limit preset: {name!r}")
    return RateLimitPolicy(
        window_seconds=getattr(settings, f"{key}_rate_limit_window_seconds"),
        max_requests=getattr(settings, f"{key}_rate_limit_max_requests"),
        name=PRESETS[key].name,
    )


class RateLimitStore:
    """In-memory windows keyed by ``(policy name, caller key)``."""

    def __init__(self) -> None:
        self._windows: dict[tuple[str, str], RateLimitWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def hit(self, key: str, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        """Admit or reject one request for ``key`` at time ``now``.

        A rejected request does not count against the window.
        """
        slot = (policy.name, key)
        with self._lock:
            if len(self._windows) % _PRUNE_EVERY == 0:
                self._prune(now)

            window = self._windows.get(slot)
            if window is None or window.expired(now):
                window = RateLimitWindow(
                    count=1,
                    window_start=now,
                    window_seconds=policy.window_seconds,
                    max_requests=policy.max_requests,
                )
                self._windows[slot] = window
                allowed = True
            elif window.count >= window.max_requests:
                allowed = False
            else:
                window.count += 1
                allowed = True

            remaining = max(0, window.max_requests - window.count)
            reset_at = window.reset_at

        return RateLimitResult(
            allowed=allowed,
            limit=policy.max_requests,
            remaining=remaining,
            reset_at=reset_at,
            retry_after=0 if allowed else max(1, math.ceil(reset_at - now)),
            policy_name=policy.name,
        )

    def _prune(self, now: float) -> None:
        expired = [slot for slot, window in self._windows.items() if window.expired(now)]
        for slot in expired:
            del self._windows[slot]

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


class FixedWindowRateLimiter:
    """Applies one policy against a (possibly shared) store."""

    def __init__(
        self,
        policy: RateLimitPolicy = API,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._policy = policy
        self._store = store if store is not None else RateLimitStore()
        self._clock = clock

    @property
    def policy(self) -> RateLimitPolicy:
        return self._policy

    def check(self, key: str) -> RateLimitResult:
        result = self._store.hit(key or "unknown", self._policy, self._clock())
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"policy": self._policy.name, "client": key, "retry_after": result.retry_after},
            )
        return result


def build_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def build_rejection_payload(result: RateLimitResult) -> dict:
    return {
        "error": "Rate limit exceeded",
        "message": result.message or "Too many requests",
        "retryAfter": result.retry_after,
        "limit": result.limit,
        "remaining": result.remaining,
    }


def client_identifier(headers: Mapping[str, str] | None, remote_addr: str | None = None) -> str:
    """Caller key: first ``X-Forwarded-For`` hop, else the peer address."""
    if headers:
        for name, value in headers.items():
            if name.lower() == "x-forwarded-for" and value:
                first = value.split(",")[0].strip()
                if first:
                    return first
    return remote_addr or "unknown"
