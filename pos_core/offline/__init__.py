# =============================================================================
# pos_core/offline/__init__.py
# Backend selection, local fallback and offline sync for Charnoks POS
# =============================================================================
"""
Offline-First Storage Module

The app works the same whether a remote database is reachable or not.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                      DataAccessFacade                           │
│             (Single API - the app uses this only)               │
└─────────────────────────────────────────────────────────────────┘
          │                                    │ fallback
          ▼                                    ▼
┌──────────────────────┐            ┌──────────────────────┐
│   active backend     │            │     LocalStore       │
│ supabase / firebase  │◄── replay ─│  (SQLite, JSON docs) │
│ / neon               │  SyncQueue │                      │
└──────────────────────┘            └──────────────────────┘
          ▲
          │ chosen at startup by BackendSelector (ConnectivityProbe)
          │ OfflineState / NetworkMonitor track reachability

Usage:
------
from pos_core.offline import get_storage_context

ctx = get_storage_context()
ctx.facade.create_transaction(draft)
print(ctx.get_status()["pending_sync"])
"""

from pos_core.offline.timeouts import (
    CallTimeout,
    with_timeout,
)

from pos_core.offline.local_database import (
    LocalStore,
    StoreKeys,
)

from pos_core.offline.offline_state import (
    OfflineState,
    OfflineSnapshot,
    is_connectivity_error,
)

from pos_core.offline.connectivity_probe import (
    ConnectivityProbe,
    ConnectivityResult,
)

from pos_core.offline.backend_selector import BackendSelector

from pos_core.offline.connection_manager import (
    NetworkMonitor,
    NetworkState,
    check_internet,
)

from pos_core.offline.sync_engine import (
    SyncQueue,
    SyncQueueEntry,
    ReplayResult,
)

from pos_core.offline.unified_data_service import (
    DataAccessFacade,
    StorageContext,
    get_storage_context,
)

__all__ = [
    # Timeouts
    "CallTimeout",
    "with_timeout",
    # Local Store
    "LocalStore",
    "StoreKeys",
    # Offline Signal
    "OfflineState",
    "OfflineSnapshot",
    "is_connectivity_error",
    # Backend Selection
    "ConnectivityProbe",
    "ConnectivityResult",
    "BackendSelector",
    # Network Monitoring
    "NetworkMonitor",
    "NetworkState",
    "check_internet",
    # Sync Queue
    "SyncQueue",
    "SyncQueueEntry",
    "ReplayResult",
    # Unified Access (Main API)
    "DataAccessFacade",
    "StorageContext",
    "get_storage_context",
]
