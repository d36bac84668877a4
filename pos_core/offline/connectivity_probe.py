# =============================================================================
# pos_core/offline/connectivity_probe.py
# Single bounded reachability check per backend
# =============================================================================

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional
import logging

from pos_core.models import BackendKind
from pos_core.offline.timeouts import CallTimeout, with_timeout

if TYPE_CHECKING:
    from pos_core.backends.base import StorageBackend

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "not configured"


@dataclass(frozen=True)
class ConnectivityResult:
    """Outcome of one probe."""
    backend: BackendKind
    reachable: bool
    latency_ms: int
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "backend": self.backend.value,
            "reachable": self.reachable,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


class ConnectivityProbe:
    """
    Answers "can this backend serve requests right now?" within a deadline.

    Usage:
        probe = ConnectivityProbe(backends)
        result = probe.probe(BackendKind.SUPABASE, timeout_ms=5000)
        if result.reachable:
            ...
    """

    def __init__(
        self,
        backends: Dict[BackendKind, StorageBackend],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backends = backends
        self._clock = clock

    def probe(self, backend: BackendKind, timeout_ms: int) -> ConnectivityResult:
        """
        Run the backend's health check once, bounded by ``timeout_ms``.

        Never raises: every failure becomes ``reachable=False`` with the
        error text. A health check still running when the deadline passes
        is abandoned, not cancelled.
        """
        if backend is BackendKind.LOCAL:
            return ConnectivityResult(backend, True, 0)

        adapter = self._backends.get(backend)
        if adapter is None:
            return ConnectivityResult(backend, False, 0, NOT_CONFIGURED)

        started = self._clock()
        try:
            with_timeout(adapter.health_check, timeout_ms, name=f"Probe-{backend.value}")
        except CallTimeout:
            result = ConnectivityResult(backend, False, self._elapsed_ms(started), "timeout")
        except Exception as e:
            result = ConnectivityResult(backend, False, self._elapsed_ms(started), str(e) or type(e).__name__)
        else:
            result = ConnectivityResult(backend, True, self._elapsed_ms(started))

        if result.reachable:
            logger.info(f"{backend.value} reachable ({result.latency_ms}ms)")
        else:
            logger.warning(f"{backend.value} unreachable: {result.error}")
        return result

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)
