# =============================================================================
# pos_core/backends/firebase_backend.py
# Firebase (Cloud Firestore REST API) storage backend
# =============================================================================
"""
Firestore is reached through its REST API rather than an SDK. Documents are
JSON objects whose values are wrapped in type tags::

    {"fields": {"name": {"stringValue": "Coca Cola"},
                "price": {"doubleValue": 15},
                "stock": {"integerValue": "100"}}}

Field names are camelCase on the wire. Sales and expenses share the
``sales`` collection and are told apart by their ``type`` field.
"""

from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import logging

import requests

from pos_core.backends.base import HttpBackend, camelize_keys, snakify_keys
from pos_core.errors.exceptions import ValidationError
from pos_core.models import (
    BackendKind,
    Product,
    ProductDraft,
    Transaction,
    TransactionDraft,
    TransactionType,
    build_transaction,
    transaction_from_dict,
)

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1/projects/{project_id}/databases/(default)/documents"

# Money travels as Firestore numbers, not as the strings the models emit
MONEY_FIELDS = {"price", "total", "totalAmount", "amountPaid", "change", "amount"}


# =============================================================================
# TYPED VALUE CODEC
# =============================================================================

def encode_value(value: Any) -> Dict[str, Any]:
    """Wrap a Python value in its Firestore type tag."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, (float, Decimal)):
        return {"doubleValue": float(value)}
    if isinstance(value, datetime):
        moment = value.astimezone(timezone.utc)
        return {"timestampValue": moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    return {"stringValue": str(value)}


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """Unwrap a Firestore typed value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        try:
            return int(value["integerValue"])
        except (TypeError, ValueError):
            raise ValidationError("Invalid Firestore integer", actual=repr(value["integerValue"]))
    if "doubleValue" in value:
        try:
            return Decimal(repr(float(value["doubleValue"])))
        except (TypeError, ValueError):
            raise ValidationError("Invalid Firestore double", actual=repr(value["doubleValue"]))
    if "timestampValue" in value:
        return value["timestampValue"]
    if "stringValue" in value:
        return value["stringValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    # geoPointValue, referenceValue and bytesValue have no place in a POS record
    raise ValidationError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


def _to_wire(data: Dict[str, Any]) -> Dict[str, Any]:
    """Model dict (snake_case, money as str) -> Firestore field map."""
    def convert(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: Decimal(item) if key in MONEY_FIELDS and isinstance(item, str) else convert(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [convert(item) for item in value]
        return value

    return encode_fields(convert(camelize_keys(data)))


class FirebaseBackend(HttpBackend):
    """Firestore collections ``products`` and ``sales`` over REST."""

    kind = BackendKind.FIREBASE

    PRODUCTS_COLLECTION = "products"
    SALES_COLLECTION = "sales"
    PAGE_SIZE = 300

    def __init__(
        self,
        project_id: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(FIRESTORE_URL.format(project_id=project_id), timeout=timeout, session=session)
        self.project_id = project_id
        self.api_key = api_key
        self._clock = clock

    # =========================================================================
    # CONTRACT
    # =========================================================================

    def health_check(self) -> None:
        self._make_request(self.PRODUCTS_COLLECTION, params=self._params(pageSize=1))

    def list_products(self) -> List[Product]:
        documents = self._list_documents(self.PRODUCTS_COLLECTION)
        return self._decode_rows(documents, self._product_from_document, self.PRODUCTS_COLLECTION)

    def create_product(self, draft: ProductDraft) -> Product:
        now = self._clock()
        data = {**draft.to_dict(), "created_at": now, "updated_at": now}
        document = self._create_document(self.PRODUCTS_COLLECTION, data)
        return self._product_from_document(document)

    def list_transactions(self) -> List[Transaction]:
        documents = self._list_documents(self.SALES_COLLECTION)
        transactions = self._decode_rows(documents, self._transaction_from_document, self.SALES_COLLECTION)
        return self._newest_first(transactions)

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        data = draft.to_dict()
        data["timestamp"] = draft.timestamp or self._clock()
        document = self._create_document(self.SALES_COLLECTION, data)
        return build_transaction(draft, self._document_id(document), data["timestamp"])

    # =========================================================================
    # REST HELPERS
    # =========================================================================

    def _params(self, **params) -> Dict[str, Any]:
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _list_documents(self, collection: str) -> List[Dict[str, Any]]:
        """All documents of a collection, following nextPageToken."""
        documents: List[Dict[str, Any]] = []
        page_token = None

        while True:
            params = self._params(pageSize=self.PAGE_SIZE)
            if page_token:
                params["pageToken"] = page_token
            body = self._make_request(collection, params=params).json()

            documents.extend(body.get("documents", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Fetched {len(documents)} documents from {collection}")
        return documents

    def _create_document(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        response = self._make_request(
            collection,
            method="POST",
            params=self._params(),
            data={"fields": _to_wire(data)},
        )
        return response.json()

    @staticmethod
    def _document_id(document: Dict[str, Any]) -> str:
        return document["name"].rsplit("/", 1)[-1]

    def _document_to_row(self, document: Dict[str, Any]) -> Dict[str, Any]:
        row = snakify_keys(decode_fields(document.get("fields", {})))
        row["id"] = self._document_id(document)
        return row

    def _product_from_document(self, document: Dict[str, Any]) -> Product:
        row = self._document_to_row(document)
        row.setdefault("created_at", document.get("createTime"))
        row.setdefault("updated_at", document.get("updateTime"))
        return Product.from_dict(row)

    def _transaction_from_document(self, document: Dict[str, Any]) -> Transaction:
        row = self._document_to_row(document)
        row.setdefault("type", TransactionType.SALE.value)
        row.setdefault("timestamp", document.get("createTime"))
        return transaction_from_dict(row)
