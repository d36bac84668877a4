# =============================================================================
# pos_core/offline/offline_state.py
# Process-wide online / remote-access signal
# =============================================================================
"""
OfflineState - the two flags every storage caller consults.

``has_remote_access``
    A remote backend is usable. Dropping it switches the app to local-only
    (demo) mode and marks the app offline.
``is_online``
    The network is up. It can change on its own (network monitor) without
    touching remote access.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional
import logging

from pos_core.errors.classify import is_connectivity_error

if TYPE_CHECKING:
    from pos_core.offline.local_database import LocalStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfflineSnapshot:
    """Immutable view handed to listeners."""
    has_remote_access: bool
    is_online: bool


Listener = Callable[[OfflineSnapshot], None]


class OfflineState:
    """
    Holds the flags and notifies subscribers when either one changes.

    Usage:
        state = OfflineState(local_store)
        unsubscribe = state.subscribe(lambda snap: print(snap.is_online))
        state.set_remote_access(False)   # also offline + demo flag on
        unsubscribe()
    """

    def __init__(self, local_store: Optional[LocalStore] = None):
        self._local_store = local_store
        self._has_remote_access = True
        self._is_online = True
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    @property
    def has_remote_access(self) -> bool:
        return self._has_remote_access

    @property
    def is_online(self) -> bool:
        return self._is_online

    def snapshot(self) -> OfflineSnapshot:
        with self._lock:
            return OfflineSnapshot(self._has_remote_access, self._is_online)

    def set_online(self, online: bool) -> None:
        """Network up/down. Does not change remote access."""
        with self._lock:
            changed = self._is_online != online
            self._is_online = online
        if changed:
            logger.info(f"Network status: {'online' if online else 'offline'}")
            self._notify()

    def set_remote_access(self, has_access: bool) -> None:
        """
        Grant or revoke remote access.

        Revoking also marks the app offline and turns the demo flag on;
        granting marks it online and turns the demo flag off.
        """
        with self._lock:
            changed = self._has_remote_access != has_access or self._is_online != has_access
            self._has_remote_access = has_access
            self._is_online = has_access

        if self._local_store is not None:
            if has_access:
                self._local_store.disable_demo_mode()
            else:
                self._local_store.enable_demo_mode()

        if changed:
            logger.info(f"Remote access {'restored' if has_access else 'lost'}")
            self._notify()

    def classify_and_demote(self, error: BaseException) -> bool:
        """
        Drop remote access if ``error`` is a connectivity problem.

        Returns:
            True if the error was classified as connectivity
        """
        if not is_connectivity_error(error):
            return False
        logger.warning(f"Connectivity error, switching to local storage: {error}")
        self.set_remote_access(False)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Error in offline state listener: {e}")


__all__ = ["OfflineState", "OfflineSnapshot", "is_connectivity_error"]
