# =============================================================================
# pos_core/offline/unified_data_service.py
# Unified data access - single API for online/offline operations
# =============================================================================
"""
DataAccessFacade - the only storage API the rest of the app uses.

Every call goes to the active backend first. When it fails (for any reason
other than invalid input) the same call is served by the local store, the
caller gets a normal result, and offline writes are queued for sync:

    caller ──► facade ──► active remote backend
                  │           │ error
                  │           ▼
                  └──────► LocalStore ──► SyncQueue (creates)

StorageContext wires the whole stack together:

    from pos_core.offline import get_storage_context

    ctx = get_storage_context()
    products = ctx.facade.list_products()
    ctx.facade.create_transaction(draft)
    print(ctx.get_status())
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Iterable
import logging

import requests

from pos_core.backends.base import StorageBackend
from pos_core.backends.local_backend import LocalBackend
from pos_core.backends.registry import build_backends
from pos_core.config.settings import StorageSettings, load_settings
from pos_core.config.strategy import is_sync_enabled
from pos_core.errors.exceptions import FatalLocalError, ValidationError
from pos_core.models import (
    BackendKind,
    EntityType,
    Product,
    ProductDraft,
    Transaction,
    TransactionDraft,
)
from pos_core.offline.backend_selector import BackendSelector
from pos_core.offline.connection_manager import NetworkMonitor
from pos_core.offline.connectivity_probe import ConnectivityProbe
from pos_core.offline.local_database import LocalStore
from pos_core.offline.offline_state import OfflineState
from pos_core.offline.sync_engine import ReplayResult, SyncQueue

logger = logging.getLogger(__name__)


class DataAccessFacade:
    """
    Entity reads and writes with transparent local fallback.

    A ValidationError from a backend reaches the caller unchanged. Any other
    backend error is logged, classified (connectivity errors drop remote
    access) and the call is repeated on the local store. If the local store
    fails too, FatalLocalError is raised.
    """

    def __init__(
        self,
        selector: BackendSelector,
        backends: Dict[BackendKind, StorageBackend],
        local_store: LocalStore,
        offline_state: OfflineState,
        sync_queue: SyncQueue,
    ):
        self._selector = selector
        self._backends = backends
        self._local_store = local_store
        self._offline_state = offline_state
        self._sync_queue = sync_queue

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def list_products(self) -> List[Product]:
        return self.list(EntityType.PRODUCTS)

    def create_product(self, draft: ProductDraft) -> Product:
        return self.create(EntityType.PRODUCTS, draft)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def list_transactions(self) -> List[Transaction]:
        """All sales and expenses, newest first."""
        return self.list(EntityType.TRANSACTIONS)

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        return self.create(EntityType.TRANSACTIONS, draft)

    # =========================================================================
    # GENERIC OPERATIONS
    # =========================================================================

    def list(self, entity: EntityType) -> List[Any]:
        backend = self._remote_backend()
        if backend is not None:
            try:
                records = backend.list(entity)
            except ValidationError:
                raise
            except Exception as e:
                self._on_remote_failure(backend, f"list {entity.value}", e)
            else:
                # Unsynced local-origin records stay visible next to the remote listing
                merged = self._write_through(lambda: self._local_store.refresh_cache(entity, records), entity)
                return records if merged is None else merged

        return self._local(lambda: self._local_store.list(entity), f"list {entity.value}")

    def create(self, entity: EntityType, draft: Any) -> Any:
        backend = self._remote_backend()
        if backend is not None:
            try:
                record = backend.create(entity, draft)
            except ValidationError:
                raise
            except Exception as e:
                self._on_remote_failure(backend, f"create {entity.value}", e)
            else:
                self._write_through(lambda: self._local_store.cache(entity, record), entity)
                return record

        record = self._local(lambda: self._local_store.create(entity, draft), f"create {entity.value}")
        if is_sync_enabled(entity.value):
            payload = record.to_dict()
            payload.pop("id", None)
            self._sync_queue.enqueue(entity.value, payload, local_id=record.id)
        return record

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _remote_backend(self) -> Optional[StorageBackend]:
        """Adapter to try first, or None when the call should go straight to local."""
        if not self._offline_state.has_remote_access:
            return None
        active = self._selector.get_active_backend()
        if not active.is_remote:
            return None
        backend = self._backends.get(active)
        if backend is None:
            logger.warning(f"Active backend {active.value} has no adapter, using local storage")
        return backend

    def _on_remote_failure(self, backend: StorageBackend, action: str, error: Exception) -> None:
        logger.warning(f"{backend.kind.value} {action} failed, using local storage: {error}")
        self._offline_state.classify_and_demote(error)

    @staticmethod
    def _local(call: Callable[[], Any], action: str) -> Any:
        try:
            return call()
        except (FatalLocalError, ValidationError):
            raise
        except Exception as e:
            raise FatalLocalError(f"Local {action} failed: {e}") from e

    @staticmethod
    def _write_through(call: Callable[[], Any], entity: EntityType) -> Any:
        # The remote result is already authoritative; a stale cache is recoverable
        try:
            return call()
        except FatalLocalError as e:
            logger.error(f"Could not cache {entity.value} locally: {e}")
            return None


class StorageContext:
    """
    Owns one instance of every storage component.

    Usage:
        ctx = StorageContext(settings=load_settings())
        ctx.initialize(start_monitoring=True)
        ctx.facade.create_product(draft)
        ctx.sync_now()
        ctx.cleanup()
    """

    def __init__(
        self,
        settings: Optional[StorageSettings] = None,
        local_store: Optional[LocalStore] = None,
        backends: Optional[Dict[BackendKind, StorageBackend]] = None,
        clock: Callable[[], datetime] = datetime.now,
        session: Optional[requests.Session] = None,
        network_checker: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            settings: Storage settings (default: load_settings())
            local_store: Local store (default: one at settings.local_db_path)
            backends: Adapters by kind (default: built from settings)
            clock: Source of "now" for local ids and queue timestamps
            session: Shared requests.Session for the HTTP backends
            network_checker: Reachability test for the network monitor
        """
        self.settings = settings or load_settings()
        self.local_store = local_store or LocalStore(self.settings.local_db_path, clock=clock)

        if backends is None:
            backends = build_backends(self.settings, self.local_store, session=session)
        self.backends = dict(backends)
        self.backends.setdefault(BackendKind.LOCAL, LocalBackend(self.local_store))

        self.offline_state = OfflineState(self.local_store)
        self.probe = ConnectivityProbe(self.backends)
        self.selector = BackendSelector(self.probe, self.offline_state, self.local_store, self.settings)
        self.sync_queue = SyncQueue(self.local_store, clock=clock)
        self.facade = DataAccessFacade(
            self.selector,
            self.backends,
            self.local_store,
            self.offline_state,
            self.sync_queue,
        )
        self.monitor = NetworkMonitor(
            self.offline_state,
            interval_online=self.settings.monitor_interval_online,
            interval_offline=self.settings.monitor_interval_offline,
            checker=network_checker,
        )
        self.monitor.register_online_callback(self._on_back_online)

    @property
    def active_backend(self) -> BackendKind:
        return self.selector.get_active_backend()

    def initialize(
        self,
        priority_order: Optional[Iterable[BackendKind]] = None,
        force: bool = False,
        start_monitoring: bool = False,
    ) -> BackendKind:
        """
        Prepare the local store, pick the active backend and optionally start monitoring.

        Writes queued in an earlier session are replayed as soon as a remote
        backend is chosen.
        """
        self.local_store.initialize()
        active = self.selector.initialize(priority_order=priority_order, force=force)
        if active.is_remote and self.sync_queue.pending_count > 0:
            result = self.sync_now()
            logger.info(f"Startup sync: {result.succeeded} queued writes synced, {result.remaining} pending")
        if start_monitoring:
            self.monitor.start()
        return active

    def sync_now(self) -> ReplayResult:
        """Replay queued writes to the active backend, if it is a usable remote."""
        active = self.selector.get_active_backend()
        backend = self.backends.get(active)
        if not active.is_remote or backend is None or not self.offline_state.has_remote_access:
            logger.debug("Cannot sync: no remote backend available")
            return ReplayResult(succeeded=0, remaining=self.sync_queue.pending_count)
        return self.sync_queue.replay(backend)

    def _on_back_online(self) -> None:
        """Network came back: regain a remote backend if needed, then replay."""
        if not self.offline_state.has_remote_access:
            if self.selector.reconnect() is None:
                logger.info("Network is back but no remote backend answered")
                return
        result = self.sync_now()
        logger.info(f"Back online: {result.succeeded} queued writes synced, {result.remaining} pending")

    def get_status(self) -> Dict[str, Any]:
        """Status information for UI display."""
        return {
            "active_backend": self.selector.get_active_backend().value,
            "has_remote_access": self.offline_state.has_remote_access,
            "is_online": self.offline_state.is_online,
            "demo_mode": self.local_store.is_demo_mode(),
            "pending_sync": self.sync_queue.pending_count,
            "is_syncing": self.sync_queue.is_replaying,
            "last_sync": self.sync_queue.last_replay.isoformat() if self.sync_queue.last_replay else None,
            "probe_results": [result.to_dict() for result in self.selector.last_results],
            "network": self.monitor.get_status_display(),
        }

    def cleanup(self) -> None:
        """Stop monitoring and close this thread's database connection."""
        self.monitor.stop()
        self.local_store.close()


# Module-level accessor
_storage_context: Optional[StorageContext] = None


def get_storage_context() -> StorageContext:
    """
    Get the shared StorageContext, creating and initializing it on first use.

    Tests and scripts that need isolation construct their own StorageContext.
    """
    global _storage_context
    if _storage_context is None:
        _storage_context = StorageContext()
        _storage_context.initialize(start_monitoring=True)
    return _storage_context
