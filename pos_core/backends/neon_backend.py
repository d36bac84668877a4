# =============================================================================
# pos_core/backends/neon_backend.py
# Neon (PostgreSQL behind the POS REST API) storage backend
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

import requests

from pos_core.backends.base import HttpBackend, camelize_keys, snakify_keys
from pos_core.errors.exceptions import ConnectivityError
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


class NeonBackend(HttpBackend):
    """
    Products, sales and expenses through the POS server's REST routes.

    The server speaks camelCase JSON and numeric ids; rows are snake_cased
    and tagged with their transaction type on the way in.
    """

    kind = BackendKind.NEON

    ENDPOINTS = {
        TransactionType.SALE: "api/sales",
        TransactionType.EXPENSE: "api/expenses",
    }

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, timeout=timeout, session=session)

    def health_check(self) -> None:
        response = self._make_request("api/health")
        body = response.json()
        if isinstance(body, dict) and body.get("status") not in (None, "healthy"):
            raise ConnectivityError(
                f"Neon reports {body.get('status')}: {body.get('error', 'unknown')}",
                backend=self.kind.value,
            )

    def list_products(self) -> List[Product]:
        rows = self._get_rows("api/products")
        return self._decode_rows(rows, Product.from_dict, "api/products")

    def create_product(self, draft: ProductDraft) -> Product:
        row = self._post_row("api/products", draft.to_dict())
        return Product.from_dict(row)

    def list_transactions(self) -> List[Transaction]:
        transactions = []
        for kind, path in self.ENDPOINTS.items():
            rows = [self._tag(row, kind) for row in self._get_rows(path)]
            transactions.extend(self._decode_rows(rows, transaction_from_dict, path))
        return self._newest_first(transactions)

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        kind = TransactionType.SALE if isinstance(draft, SaleDraft) else TransactionType.EXPENSE
        payload = draft.to_dict()
        payload.pop("type")
        row = self._post_row(self.ENDPOINTS[kind], payload)
        return transaction_from_dict(self._tag(row, kind))

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get_rows(self, path: str) -> List[Dict[str, Any]]:
        body = self._make_request(path).json()
        if not isinstance(body, list):
            logger.warning(f"Neon {path} returned {type(body).__name__}, expected a list")
            return []
        return [snakify_keys(row) for row in body if isinstance(row, dict)]

    def _post_row(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._make_request(path, method="POST", data=camelize_keys(payload)).json()
        return snakify_keys(body)

    @staticmethod
    def _tag(row: Dict[str, Any], kind: TransactionType) -> Dict[str, Any]:
        tagged = {**row, "type": kind.value}
        if not tagged.get("timestamp"):
            tagged["timestamp"] = tagged.get("created_at")
        return tagged
