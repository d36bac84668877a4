# =============================================================================
# pos_core/backends/local_backend.py
# Adapter exposing the local store through the backend contract
# =============================================================================

from __future__ import annotations
from typing import TYPE_CHECKING, List

from pos_core.backends.base import StorageBackend
from pos_core.models import BackendKind, Product, ProductDraft, Transaction, TransactionDraft

if TYPE_CHECKING:
    from pos_core.offline.local_database import LocalStore


class LocalBackend(StorageBackend):
    """The always-available tier. Ids it assigns start with "local-"."""

    kind = BackendKind.LOCAL

    def __init__(self, store: LocalStore):
        self.store = store

    def health_check(self) -> None:
        self.store.initialize()

    def list_products(self) -> List[Product]:
        return self.store.get_products()

    def create_product(self, draft: ProductDraft) -> Product:
        return self.store.add_product(draft)

    def list_transactions(self) -> List[Transaction]:
        return self.store.get_transactions()

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        return self.store.add_transaction(draft)
