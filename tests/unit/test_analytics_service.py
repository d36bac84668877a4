# =============================================================================
# tests/unit/test_analytics_service.py
# Unit Tests for AnalyticsService
# =============================================================================

import pytest
from datetime import datetime
from decimal import Decimal

from pos_core.models import ExpenseDraft, SaleDraft, SaleItem, build_transaction
from pos_core.services import AnalyticsService, TransactionStats, transactions_to_dataframe

NOW = datetime(2024, 6, 10, 14, 30)


def _sale(txn_id, price, timestamp, worker="worker@demo.com", status="completed", voice=False):
    draft = SaleDraft(
        items=[SaleItem("p-1", "Coca Cola", 1, Decimal(price))],
        amount_paid=Decimal(price),
        worker_id="w-1",
        worker_email=worker,
        status=status,
        is_voice_transaction=voice,
    )
    return build_transaction(draft, txn_id, timestamp)


def _expense(txn_id, amount, timestamp):
    draft = ExpenseDraft(
        description="Ice delivery",
        amount=Decimal(amount),
        category="Supplies",
        worker_id="w-1",
        worker_email="worker@demo.com",
    )
    return build_transaction(draft, txn_id, timestamp)


@pytest.fixture
def service():
    return AnalyticsService()


@pytest.fixture
def ledger():
    return [
        _sale("s-1", "15.50", datetime(2024, 6, 10, 9, 0), voice=True),
        _sale("s-2", "40", datetime(2024, 6, 9, 18, 0), worker="cashier@demo.com"),
        _sale("s-3", "100", datetime(2024, 6, 10, 10, 0), status="cancelled"),
        _expense("e-1", "20.25", datetime(2024, 6, 10, 11, 0)),
    ]


class TestCalculateStats:

    def test_totals_count_completed_only(self, service, ledger):
        stats = service.calculate_stats(ledger, now=NOW)

        assert stats.total_sales == Decimal("55.50")
        assert stats.total_expenses == Decimal("20.25")
        assert stats.net_income == Decimal("35.25")
        assert stats.total_transactions == 2
        assert stats.average_transaction == Decimal("27.75")

    def test_todays_revenue_starts_at_midnight(self, service, ledger):
        stats = service.calculate_stats(ledger, now=NOW)
        assert stats.todays_revenue == Decimal("15.50")

    def test_voice_transactions(self, service, ledger):
        assert service.calculate_stats(ledger, now=NOW).voice_transactions == 1

    def test_workers_counted_from_users(self, service, ledger):
        users = [
            {"id": "u-1", "role": "worker"},
            {"id": "u-2", "role": "admin"},
            {"id": "u-3", "role": "worker"},
        ]
        assert service.calculate_stats(ledger, users, now=NOW).total_workers == 2

    def test_empty_ledger(self, service):
        stats = service.calculate_stats([], [{"role": "worker"}], now=NOW)
        assert stats == TransactionStats(total_workers=1)
        assert stats.to_dict()["net_income"] == Decimal("0")


class TestSalesByWorker:

    def test_groups_and_orders_by_revenue(self, service, ledger):
        summary = service.sales_by_worker(ledger)

        assert summary["worker_email"].tolist() == ["cashier@demo.com", "worker@demo.com"]
        assert summary["sales"].tolist() == [1, 1]
        assert summary["revenue"].tolist() == [Decimal("40"), Decimal("15.50")]

    def test_no_sales(self, service):
        summary = service.sales_by_worker([_expense("e-1", "5", NOW)])
        assert summary.empty
        assert list(summary.columns) == ["worker_email", "sales", "revenue"]


class TestSummarize:

    def test_success_result(self, service, ledger):
        result = service.summarize(ledger)
        assert result
        assert isinstance(result.data, TransactionStats)

    def test_failure_result(self, service, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("bad frame")

        monkeypatch.setattr(service, "calculate_stats", broken)
        result = service.summarize([])

        assert not result
        assert result.error == "bad frame"
        assert result.error_code == "UNKNOWN"


def test_dataframe_columns(ledger):
    df = transactions_to_dataframe(ledger)

    assert len(df) == 4
    assert df.loc[df["id"] == "e-1", "item_count"].item() == 0
    assert df.loc[df["id"] == "s-1", "type"].item() == "sale"
