# =============================================================================
# pos_core/config/__init__.py
# Configuration for the storage layer
# =============================================================================

from .settings import StorageSettings, load_settings, parse_priority
from .strategy import STORAGE_STRATEGY, StorageStrategy, get_strategy, is_sync_enabled

__all__ = [
    "StorageSettings",
    "load_settings",
    "parse_priority",
    "STORAGE_STRATEGY",
    "StorageStrategy",
    "get_strategy",
    "is_sync_enabled",
]
