# =============================================================================
# pos_core/offline/connection_manager.py
# Network reachability monitoring
# =============================================================================
"""
NetworkMonitor - watches internet reachability in the background.

Features:
- Socket-level check against public DNS hosts
- Faster re-checks while offline
- Mirrors the result into OfflineState.set_online
- "Back online" callbacks (used to replay the sync queue)
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
import logging

from pos_core.offline.offline_state import OfflineState

logger = logging.getLogger(__name__)

DEFAULT_HOSTS: Tuple[Tuple[str, int], ...] = (
    ("8.8.8.8", 53),          # Google DNS
    ("1.1.1.1", 53),          # Cloudflare DNS
    ("208.67.222.222", 53),   # OpenDNS
)


@dataclass
class NetworkState:
    """Result of the latest check."""
    is_online: Optional[bool] = None
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0


def check_internet(hosts: Sequence[Tuple[str, int]] = DEFAULT_HOSTS, timeout: float = 5.0) -> bool:
    """True if any of ``hosts`` accepts a TCP connection."""
    for host, port in hosts:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            continue
    return False


class NetworkMonitor:
    """
    Usage:
        monitor = NetworkMonitor(offline_state)
        monitor.register_online_callback(lambda: queue.replay(backend))
        monitor.start()
        ...
        monitor.stop()
    """

    CONNECTION_TIMEOUT = 5      # Seconds per host attempt

    def __init__(
        self,
        offline_state: OfflineState,
        interval_online: int = 30,
        interval_offline: int = 10,
        checker: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            offline_state: Receives set_online() on every transition
            interval_online: Seconds between checks while online
            interval_offline: Seconds between checks while offline
            checker: Reachability test (default: socket check on DNS hosts)
        """
        self._offline_state = offline_state
        self.interval_online = interval_online
        self.interval_offline = interval_offline
        self._checker = checker or (lambda: check_internet(timeout=self.CONNECTION_TIMEOUT))
        self._state = NetworkState()
        self._online_callbacks: List[Callable[[], None]] = []
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()

    @property
    def state(self) -> NetworkState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._monitor_thread is not None and self._monitor_thread.is_alive()

    def check_now(self) -> bool:
        """
        Perform a check and apply it.

        Returns:
            True if the network is reachable
        """
        try:
            online = bool(self._checker())
        except Exception as e:
            logger.error(f"Error in connection check: {e}")
            online = False

        previous = self._state.is_online
        now = datetime.now()
        self._state.is_online = online
        self._state.last_check = now
        if online:
            self._state.last_online = now
            self._state.consecutive_failures = 0
        else:
            self._state.consecutive_failures += 1

        if previous != online:
            logger.info(f"Network connection {'restored' if online else 'lost'}")
            self._offline_state.set_online(online)
            # The first check is a baseline and fires nothing
            if online and previous is False:
                self._notify_online()
        elif online and not self._offline_state.has_remote_access:
            # Network stayed up but a backend failure revoked remote access
            self._notify_online()

        return online

    def start(self) -> None:
        """Start background monitoring."""
        if self.is_running:
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="NetworkMonitor",
        )
        self._monitor_thread.start()
        logger.debug("Network monitoring started")

    def stop(self) -> None:
        """Stop background monitoring."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
        self._monitor_thread = None
        logger.debug("Network monitoring stopped")

    def _monitoring_loop(self) -> None:
        while not self._stop_monitoring.is_set():
            self.check_now()
            interval = self.interval_online if self._state.is_online else self.interval_offline
            if self._stop_monitoring.wait(timeout=interval):
                break

    def register_online_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._online_callbacks:
            self._online_callbacks.append(callback)

    def unregister_online_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._online_callbacks:
            self._online_callbacks.remove(callback)

    def _notify_online(self) -> None:
        for callback in list(self._online_callbacks):
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in online callback: {e}")

    def get_status_display(self) -> dict:
        """Status information for UI display."""
        return {
            "is_online": self._state.is_online,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
        }
