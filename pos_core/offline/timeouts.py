# =============================================================================
# pos_core/offline/timeouts.py
# Deadline helper for blocking backend calls
# =============================================================================

from __future__ import annotations
import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class CallTimeout(TimeoutError):
    """The call did not finish before its deadline."""

    def __init__(self, timeout_ms: int):
        super().__init__("timeout")
        self.timeout_ms = timeout_ms


def with_timeout(func: Callable[[], T], timeout_ms: int, name: str = "TimedCall") -> T:
    """
    Run ``func`` on a daemon thread and wait at most ``timeout_ms``.

    The call is not cancelled when the deadline passes: the thread is left to
    finish on its own and its result is discarded.

    Raises:
        CallTimeout: if the deadline passes first
        Exception: whatever ``func`` raised, re-raised in the caller
    """
    outcome = {}
    done = threading.Event()

    def runner():
        try:
            outcome["value"] = func()
        except BaseException as e:
            outcome["error"] = e
        finally:
            done.set()

    worker = threading.Thread(target=runner, daemon=True, name=name)
    worker.start()

    if not done.wait(timeout=max(timeout_ms, 0) / 1000):
        raise CallTimeout(timeout_ms)

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
