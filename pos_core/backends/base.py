# =============================================================================
# pos_core/backends/base.py
# Abstract storage backend and shared HTTP plumbing
# =============================================================================
"""
Every remote backend implements the same small contract (health check,
list/create for products and transactions) and translates its native rows
into the normalized ``pos_core.models`` types at the boundary, so no
SDK-specific field names leak upward.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import re

import requests

from pos_core.errors.exceptions import BackendError, ConnectivityError, ValidationError
from pos_core.errors.classify import CONNECTIVITY_STATUS_CODES
from pos_core.models import (
    BackendKind,
    EntityType,
    Product,
    ProductDraft,
    Transaction,
    TransactionDraft,
)

logger = logging.getLogger(__name__)

VALIDATION_STATUS_CODES = {400, 409, 422}


class StorageBackend(ABC):
    """Abstract base class for all storage backends"""

    kind: BackendKind

    @abstractmethod
    def health_check(self) -> None:
        """Issue one minimal call; raise if the backend cannot serve requests."""

    @abstractmethod
    def list_products(self) -> List[Product]:
        pass

    @abstractmethod
    def create_product(self, draft: ProductDraft) -> Product:
        """Persist a product and return it with the backend-assigned id."""

    @abstractmethod
    def list_transactions(self) -> List[Transaction]:
        """All transactions, newest first."""

    @abstractmethod
    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        """Persist a sale or expense and return it with the backend-assigned id."""

    def list(self, entity: EntityType) -> List[Any]:
        if entity is EntityType.PRODUCTS:
            return self.list_products()
        return self.list_transactions()

    def create(self, entity: EntityType, draft: Any) -> Any:
        if entity is EntityType.PRODUCTS:
            return self.create_product(draft)
        return self.create_transaction(draft)

    def _decode_rows(
        self,
        rows: Iterable[Dict[str, Any]],
        decode: Callable[[Dict[str, Any]], Any],
        source: str,
    ) -> List[Any]:
        """Map native rows, skipping the ones that fail validation."""
        records = []
        for row in rows:
            try:
                records.append(decode(row))
            except (ValidationError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"{self.kind.value}: skipping malformed row from {source}: {e}")
        return records

    @staticmethod
    def _newest_first(transactions: List[Transaction]) -> List[Transaction]:
        return sorted(transactions, key=lambda t: t.timestamp, reverse=True)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.kind.value}>"


class HttpBackend(StorageBackend):
    """Backend reached over plain HTTP with a shared requests.Session."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def _make_request(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
    ) -> requests.Response:
        """
        Make an HTTP request and translate failures into POS errors.

        Raises:
            ConnectivityError: network failure, timeout, auth/permission or 5xx
            ValidationError: the backend rejected the payload (400/409/422)
            BackendError: any other non-2xx answer
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        backend = self.kind.value

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ConnectivityError(f"{backend} request timed out: {e}", backend=backend) from e
        except requests.exceptions.RequestException as e:
            raise ConnectivityError(f"{backend} network error: {e}", backend=backend) from e

        if response.ok:
            return response

        message = self._error_message(response)
        status = response.status_code
        if status in CONNECTIVITY_STATUS_CODES:
            raise ConnectivityError(f"{backend} {method} {path} failed: {message}", backend=backend, status_code=status)
        if status in VALIDATION_STATUS_CODES:
            raise ValidationError(f"{backend} rejected {method} {path}: {message}", details={"status_code": status})
        raise BackendError(f"{backend} {method} {path} failed: {message}", backend=backend, status_code=status)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason or str(response.status_code)
        if isinstance(body, dict):
            error = body.get("error", body)
            if isinstance(error, dict):
                return str(error.get("message") or error.get("status") or error)
            return str(error)
        return str(body)


# =============================================================================
# FIELD NAME MAPPING (camelCase wire formats)
# =============================================================================

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def camelize_keys(value: Any) -> Any:
    """Recursively rename dict keys snake_case -> camelCase."""
    if isinstance(value, dict):
        return {to_camel(k): camelize_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [camelize_keys(v) for v in value]
    return value


def snakify_keys(value: Any) -> Any:
    """Recursively rename dict keys camelCase -> snake_case."""
    if isinstance(value, dict):
        return {to_snake(k): snakify_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [snakify_keys(v) for v in value]
    return value
