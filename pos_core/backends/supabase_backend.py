# =============================================================================
# pos_core/backends/supabase_backend.py
# Supabase (PostgreSQL) storage backend
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from pos_core.backends.base import StorageBackend
from pos_core.errors.classify import is_connectivity_error
from pos_core.errors.exceptions import BackendError, ConnectivityError, ValidationError
from pos_core.models import (
    BackendKind,
    Product,
    ProductDraft,
    SaleDraft,
    Transaction,
    TransactionDraft,
    TransactionType,
    transaction_from_dict,
)

logger = logging.getLogger(__name__)


def create_supabase_client(url: str, key: str):
    """Create a supabase-py client; imported lazily so the SDK stays optional at import time."""
    from supabase import create_client
    return create_client(url, key)


class SupabaseBackend(StorageBackend):
    """
    Products, sales and expenses in Supabase tables.

    Tables use snake_case columns (``image_url``, ``total_amount``...), which
    match the normalized schema; sales and expenses live in separate tables
    and get their ``type`` tag on the way in.
    """

    kind = BackendKind.SUPABASE

    PRODUCTS_TABLE = "products"
    SALES_TABLE = "sales"
    EXPENSES_TABLE = "expenses"
    HEALTH_TABLE = "users"
    BATCH_SIZE = 1000

    # Postgres classes 22 (data exception) and 23 (integrity violation)
    VALIDATION_CODE_PREFIXES = ("22", "23")

    def __init__(self, client: Any = None, url: Optional[str] = None, key: Optional[str] = None):
        """
        Args:
            client: Ready supabase client (tests pass a mock)
            url, key: Used to create a client when none is given
        """
        self._client = client
        self._url = url
        self._key = key

    @property
    def client(self):
        if self._client is None:
            if not (self._url and self._key):
                raise ConnectivityError("Supabase is not configured", backend=self.kind.value)
            try:
                self._client = create_supabase_client(self._url, self._key)
            except Exception as e:
                raise ConnectivityError(f"Failed to initialize Supabase client: {e}", backend=self.kind.value) from e
        return self._client

    # =========================================================================
    # CONTRACT
    # =========================================================================

    def health_check(self) -> None:
        self._execute(self.client.table(self.HEALTH_TABLE).select("id").limit(1), "health check")

    def list_products(self) -> List[Product]:
        rows = self._fetch_all(self.PRODUCTS_TABLE)
        return self._decode_rows(rows, Product.from_dict, self.PRODUCTS_TABLE)

    def create_product(self, draft: ProductDraft) -> Product:
        row = self._insert(self.PRODUCTS_TABLE, draft.to_dict())
        return Product.from_dict(row)

    def list_transactions(self) -> List[Transaction]:
        transactions = []
        for table, kind in ((self.SALES_TABLE, TransactionType.SALE), (self.EXPENSES_TABLE, TransactionType.EXPENSE)):
            rows = self._fetch_all(table, order_by="timestamp")
            transactions.extend(
                self._decode_rows(
                    ({**row, "type": kind.value} for row in rows),
                    transaction_from_dict,
                    table,
                )
            )
        return self._newest_first(transactions)

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        table = self.SALES_TABLE if isinstance(draft, SaleDraft) else self.EXPENSES_TABLE
        payload = draft.to_dict()
        payload.pop("type")
        row = self._insert(table, payload)
        return transaction_from_dict({**row, "type": draft.type.value})

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _fetch_all(self, table: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch every row, paging past the 1000-row response limit."""
        all_rows: List[Dict[str, Any]] = []
        offset = 0

        while True:
            query = self.client.table(table).select("*")
            if order_by:
                query = query.order(order_by, desc=True)
            query = query.range(offset, offset + self.BATCH_SIZE - 1)
            response = self._execute(query, f"select {table}")

            batch = response.data or []
            all_rows.extend(batch)
            if len(batch) < self.BATCH_SIZE:
                break
            offset += self.BATCH_SIZE

        return all_rows

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        response = self._execute(self.client.table(table).insert(row), f"insert {table}")
        if not response.data:
            raise BackendError(f"Supabase insert into {table} returned no row", backend=self.kind.value)
        return response.data[0]

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            raise self._translate_error(e, action) from e

    def _translate_error(self, error: Exception, action: str) -> Exception:
        backend = self.kind.value
        code = str(getattr(error, "code", "") or "")
        message = str(getattr(error, "message", "") or error)

        if code.startswith(self.VALIDATION_CODE_PREFIXES):
            return ValidationError(f"Supabase {action} rejected: {message}", details={"code": code})
        if is_connectivity_error(error):
            return ConnectivityError(f"Supabase {action} failed: {message}", backend=backend, details={"code": code})
        return BackendError(f"Supabase {action} failed: {message}", backend=backend, details={"code": code})
