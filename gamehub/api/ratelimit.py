"""
In-process sliding-window rate limiter for the public auth endpoints.
Attempts are kept per key (e.g. "login:<ip>") and pruned once older than the window.
"""

import math
import threading
import time
from collections import defaultdict, deque

from fastapi import Request

from gamehub.config import (
    LOGIN_MAX_ATTEMPTS,
    LOGIN_WINDOW_SECONDS,
    REGISTER_MAX_ATTEMPTS,
    REGISTER_WINDOW_SECONDS,
)
from gamehub.core.errors import RateLimited


class RateLimiter:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._attempts: dict[str, deque] = defaultdict(deque)
        self._lock = threading.Lock()

    def _prune(self, key: str, window: float, now: float) -> deque:
        attempts = self._attempts[key]
        while attempts and now - attempts[0] >= window:
            attempts.popleft()
        return attempts

    def available_in(self, key: str, max_attempts: int, window: float) -> int:
        """Seconds until another attempt is allowed; 0 if allowed now."""
        with self._lock:
            now = self._clock()
            attempts = self._prune(key, window, now)
            if len(attempts) < max_attempts:
                return 0
            return max(1, math.ceil(window - (now - attempts[0])))

    def hit(self, key: str) -> None:
        with self._lock:
            self._attempts[key].append(self._clock())

    def clear(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


limiter = RateLimiter()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def register_key(request: Request) -> str:
    return f"register:{client_ip(request)}"


def login_key(request: Request) -> str:
    return f"login:{client_ip(request)}"


def throttle_register(request: Request) -> str:
    """Every registration attempt counts; a successful one clears the key."""
    key = register_key(request)
    retry_after = limiter.available_in(key, REGISTER_MAX_ATTEMPTS, REGISTER_WINDOW_SECONDS)
    if retry_after:
        raise RateLimited(
            f"Too many registration attempts. Try again in {math.ceil(retry_after / 60)} minutes.",
            retry_after,
        )
    limiter.hit(key)
    return key


def throttle_login(request: Request) -> str:
    """Only failed logins count (the handler records them)."""
    key = login_key(request)
    retry_after = limiter.available_in(key, LOGIN_MAX_ATTEMPTS, LOGIN_WINDOW_SECONDS)
    if retry_after:
        raise RateLimited(
            f"Too many login attempts. Try again in {math.ceil(retry_after / 60)} minutes.",
            retry_after,
        )
    return key
