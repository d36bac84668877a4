# =============================================================================
# pos_core/offline/backend_selector.py
# Startup selection of the active storage backend
# =============================================================================
"""
BackendSelector - probes backends in priority order and records the winner.

    supabase ──► firebase ──► neon ──► local (clean demo)

The first reachable backend becomes active and later ones are not probed.
When none answers, the app runs on the local store in a clean demo mode:
cached products, transactions and users are dropped and no sample data is
loaded.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, List, Optional
import logging

from pos_core.logging import LogContext
from pos_core.models import BackendKind
from pos_core.offline.connectivity_probe import ConnectivityProbe, ConnectivityResult
from pos_core.offline.local_database import LocalStore, StoreKeys
from pos_core.offline.offline_state import OfflineState

if TYPE_CHECKING:
    from pos_core.config.settings import StorageSettings

logger = logging.getLogger(__name__)


class BackendSelector:
    """
    Usage:
        selector = BackendSelector(probe, offline_state, local_store, settings)
        active = selector.initialize()
        ...
        selector.get_active_backend()   # pure read, no probing
    """

    def __init__(
        self,
        probe: ConnectivityProbe,
        offline_state: OfflineState,
        local_store: LocalStore,
        settings: StorageSettings,
    ):
        self._probe = probe
        self._offline_state = offline_state
        self._local_store = local_store
        self._settings = settings
        self._initialized = False
        self.last_results: List[ConnectivityResult] = []

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(
        self,
        priority_order: Optional[Iterable[BackendKind]] = None,
        force: bool = False,
    ) -> BackendKind:
        """
        Choose and persist the active backend.

        Args:
            priority_order: Backends to try, in order (default from settings)
            force: Probe again even if a backend was already chosen

        Returns:
            The active BackendKind
        """
        if self._initialized and not force:
            return self.get_active_backend()

        with LogContext(logger, "Testing database connections in priority order"):
            chosen = self._first_reachable(priority_order) or BackendKind.LOCAL

        self._activate(chosen)
        self._initialized = True
        return chosen

    def reconnect(self, priority_order: Optional[Iterable[BackendKind]] = None) -> Optional[BackendKind]:
        """
        Probe the remote backends again after connectivity came back.

        Unlike ``initialize`` nothing happens to the local store when every
        probe fails, so offline writes waiting for replay are kept.

        Returns:
            The newly active remote backend, or None
        """
        chosen = self._first_reachable(priority_order)
        if chosen is not None:
            self._activate(chosen)
            self._initialized = True
        return chosen

    def get_active_backend(self) -> BackendKind:
        """The persisted choice; local when nothing (or garbage) is stored."""
        stored = self._local_store.get_setting(StoreKeys.ACTIVE_DATABASE, BackendKind.LOCAL.value)
        try:
            return BackendKind.parse(stored)
        except ValueError:
            logger.warning(f"Ignoring unknown active database value: {stored!r}")
            return BackendKind.LOCAL

    def _first_reachable(self, priority_order: Optional[Iterable[BackendKind]]) -> Optional[BackendKind]:
        """Probe in order; stop at the first reachable remote or at "local"."""
        order = [BackendKind.parse(kind) for kind in (priority_order or self._settings.priority)]
        results: List[ConnectivityResult] = []
        chosen = None

        for kind in order:
            if kind is BackendKind.LOCAL:
                break
            result = self._probe.probe(kind, self._settings.timeout_for(kind))
            results.append(result)
            if result.reachable:
                chosen = kind
                break

        self.last_results = results
        return chosen

    def _activate(self, kind: BackendKind) -> None:
        self._local_store.set_setting(StoreKeys.ACTIVE_DATABASE, kind.value)

        if kind is BackendKind.LOCAL:
            logger.warning("No database connections available, using local storage")
            self._local_store.clear_demo_data()
            self._offline_state.set_remote_access(False)
            self._local_store.enable_demo_mode()
            logger.info("Clean demo mode activated, no sample data loaded")
        else:
            logger.info(f"Using {kind.value} as primary database")
            self._offline_state.set_remote_access(True)
            self._local_store.disable_demo_mode()
