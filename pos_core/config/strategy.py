# =============================================================================
# pos_core/config/strategy.py
# Per-data-type storage strategy
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class StorageStrategy:
    """Whether writes of a data type that land locally are queued for sync."""
    sync_enabled: bool


STORAGE_STRATEGY: Dict[str, StorageStrategy] = {
    # Product catalog
    "products": StorageStrategy(sync_enabled=True),
    # Sales and expenses
    "transactions": StorageStrategy(sync_enabled=True),
}


def get_strategy(data_type: str) -> StorageStrategy:
    """
    Look up the strategy for a data type.

    Raises:
        KeyError: for an unknown data type
    """
    return STORAGE_STRATEGY[data_type]


def is_sync_enabled(data_type: str) -> bool:
    strategy = STORAGE_STRATEGY.get(data_type)
    return bool(strategy and strategy.sync_enabled)
