# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from unittest.mock import MagicMock

from pos_core.backends.base import StorageBackend
from pos_core.config.settings import StorageSettings
from pos_core.models import (
    BackendKind,
    ExpenseDraft,
    Product,
    ProductDraft,
    SaleDraft,
    SaleItem,
    build_transaction,
)
from pos_core.offline.local_database import LocalStore


# =============================================================================
# CLOCK
# =============================================================================

class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def frozen_clock():
    """Clock fixed at 2024-06-10 14:30 local time"""
    return FrozenClock(datetime(2024, 6, 10, 14, 30, 0))


# =============================================================================
# FAKE BACKEND
# =============================================================================

class FakeBackend(StorageBackend):
    """
    In-memory backend with switchable failures.

    Set ``health_error`` to make the health check raise, ``health_delay`` to
    make it block, and ``errors["create_product"]`` (etc.) to make a call
    raise.
    """

    def __init__(self, kind: BackendKind):
        self.kind = kind
        self.products: List[Product] = []
        self.transactions: List = []
        self.health_error: Optional[Exception] = None
        self.health_delay: float = 0.0
        self.errors: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self._next_id = 1

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.errors:
            raise self.errors[operation]

    def _new_id(self) -> str:
        new_id = f"{self.kind.value}-{self._next_id}"
        self._next_id += 1
        return new_id

    def health_check(self) -> None:
        import time

        self.calls.append("health_check")
        if self.health_delay:
            time.sleep(self.health_delay)
        if self.health_error is not None:
            raise self.health_error

    def list_products(self):
        self._maybe_fail("list_products")
        return list(self.products)

    def create_product(self, draft):
        self._maybe_fail("create_product")
        product = Product.from_draft(draft, self._new_id(), datetime(2024, 6, 10, 14, 30))
        self.products.append(product)
        return product

    def list_transactions(self):
        self._maybe_fail("list_transactions")
        return self._newest_first(self.transactions)

    def create_transaction(self, draft):
        self._maybe_fail("create_transaction")
        transaction = build_transaction(draft, self._new_id(), datetime(2024, 6, 10, 14, 30))
        self.transactions.append(transaction)
        return transaction


@pytest.fixture
def fake_backend_cls():
    """The FakeBackend class, for tests that build or subclass their own"""
    return FakeBackend


@pytest.fixture
def fake_backends():
    """One fake adapter per remote kind"""
    return {
        BackendKind.SUPABASE: FakeBackend(BackendKind.SUPABASE),
        BackendKind.FIREBASE: FakeBackend(BackendKind.FIREBASE),
        BackendKind.NEON: FakeBackend(BackendKind.NEON),
    }


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def local_store(tmp_path, frozen_clock):
    """LocalStore on a temporary SQLite file"""
    store = LocalStore(tmp_path / "charnoks_pos.db", clock=frozen_clock)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def storage_settings(tmp_path):
    """Settings with every remote configured and short probe timeouts"""
    return StorageSettings(
        supabase_url="https://example.supabase.co",
        supabase_key="test-key",
        firebase_project_id="charnoks-test",
        neon_api_url="https://neon.example.com",
        probe_timeout_ms=500,
        backend_timeouts_ms={BackendKind.FIREBASE: 300},
        local_db_path=tmp_path / "charnoks_pos.db",
    )


@pytest.fixture
def storage_context(storage_settings, local_store, fake_backends, frozen_clock):
    """StorageContext wired to fake adapters and a temporary local store"""
    from pos_core.offline.unified_data_service import StorageContext

    ctx = StorageContext(
        settings=storage_settings,
        local_store=local_store,
        backends=fake_backends,
        clock=frozen_clock,
        network_checker=lambda: True,
    )
    yield ctx
    ctx.monitor.stop()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def product_draft():
    return ProductDraft(name="Coca Cola", price=Decimal("15"), category="Beverages", stock=100)


@pytest.fixture
def sale_draft():
    """Two Coke and one Piattos, paid with 100"""
    return SaleDraft(
        items=[
            SaleItem("p-1", "Coca Cola", 2, Decimal("15")),
            SaleItem("p-2", "Piattos", 1, Decimal("25")),
        ],
        amount_paid=Decimal("100"),
        worker_id="w-1",
        worker_email="worker@demo.com",
    )


@pytest.fixture
def expense_draft():
    return ExpenseDraft(
        description="Ice delivery",
        amount=Decimal("120"),
        category="Supplies",
        worker_id="w-1",
        worker_email="worker@demo.com",
    )


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit(monkeypatch):
    """Mock Streamlit as seen by the error handlers"""
    mock_st = MagicMock()
    mock_st.session_state = {}
    monkeypatch.setattr("pos_core.errors.handlers.st", mock_st)
    return mock_st


@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    query = mock_client.table.return_value.select.return_value
    query.limit.return_value.execute.return_value.data = [{"id": 1}]
    query.order.return_value = query
    query.range.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[])
    return mock_client
