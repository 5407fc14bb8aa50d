# live_scoring/cooldown.py
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Set

from live_scoring.errors import SyncInProgressError

logger = logging.getLogger(__name__)

# Simple in-memory guard store (sufficient for single-instance deploys)
# key -> cool-down expiry (monotonic seconds)
_cooldowns: Dict[str, float] = {}
_in_flight: Set[str] = set()
_lock = threading.Lock()

Clock = Callable[[], float]


def make_key(*parts: str) -> str:
    """
    Namespaced guard keys, e.g.
      make_key("record", "m-42") -> "record:m-42"
    """
    key = ":".join([str(p).strip() for p in parts if str(p).strip()])
    if not key:
        raise ValueError("Guard key must be non-empty")
    return key


def remaining(key: str, clock: Clock = time.monotonic) -> float:
    """Seconds left on the key's cool-down (0.0 when free)."""
    with _lock:
        expires_at = _cooldowns.get(key)
        if expires_at is None:
            return 0.0
        left = expires_at - clock()
        if left <= 0:
            _cooldowns.pop(key, None)
            return 0.0
        return left


def is_busy(key: str, clock: Clock = time.monotonic) -> bool:
    with _lock:
        if key in _in_flight:
            return True
    return remaining(key, clock) > 0


def start_cooldown(key: str, cooldown_ms: int, clock: Clock = time.monotonic) -> None:
    if cooldown_ms <= 0:
        # Guard disabled for this key
        return
    with _lock:
        _cooldowns[key] = clock() + cooldown_ms / 1000.0


def command_key(match_id: str) -> str:
    """In-flight slot shared by every scoring command for one match."""
    return make_key("command", match_id)


@contextmanager
def guard(
    key: str,
    cooldown_ms: int,
    clock: Clock = time.monotonic,
    *,
    in_flight_key: Optional[str] = None,
) -> Iterator[None]:
    """
    At most one holder per in-flight key (defaults to key), and no new
    holder of key until cooldown_ms after the previous one started. A second
    caller gets SyncInProgressError instead of waiting.

    Callers that pass the same in_flight_key exclude each other while
    keeping separate cool-downs.
    """
    slot = in_flight_key or key
    now = clock()
    with _lock:
        if slot in _in_flight:
            logger.warning("Suppressed %s: previous command still in flight on %s", key, slot)
            raise SyncInProgressError(f"{slot} already in progress")
        expires_at = _cooldowns.get(key)
        if expires_at is not None and expires_at > now:
            logger.warning("Suppressed %s: %.0f ms of cool-down left", key, (expires_at - now) * 1000)
            raise SyncInProgressError(f"{key} suppressed (double tap)")
        _in_flight.add(slot)
        if cooldown_ms > 0:
            _cooldowns[key] = now + cooldown_ms / 1000.0
    try:
        yield
    finally:
        with _lock:
            _in_flight.discard(slot)


def clear() -> None:
    with _lock:
        _cooldowns.clear()
        _in_flight.clear()


def debug_snapshot(clock: Clock = time.monotonic) -> Dict[str, float]:
    """
    Returns current guard keys with remaining cool-down (seconds);
    in-flight keys report -1.0. Useful for debugging.
    """
    now = clock()
    with _lock:
        out: Dict[str, float] = {k: max(0.0, exp - now) for k, exp in _cooldowns.items()}
        for k in _in_flight:
            out[k] = -1.0
    return out
