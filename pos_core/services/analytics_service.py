"""
Analytics Service - Sales and expense KPIs for the dashboard.

Works on normalized transactions from any backend (or the local store), so
the same numbers show up online and offline.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from pos_core.models import SaleTransaction, Transaction, TransactionStatus, TransactionType
from pos_core.services.base_service import BaseService, ServiceResult

TRANSACTION_COLUMNS = [
    "id",
    "type",
    "timestamp",
    "amount",
    "worker_id",
    "worker_email",
    "status",
    "is_voice_transaction",
    "item_count",
]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class TransactionStats:
    """Dashboard KPIs. Money values are Decimal."""
    total_sales: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_workers: int = 0
    todays_revenue: Decimal = Decimal("0")
    total_transactions: int = 0          # Completed sales
    voice_transactions: int = 0
    average_transaction: Decimal = Decimal("0")

    @property
    def net_income(self) -> Decimal:
        return self.total_sales - self.total_expenses

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["net_income"] = self.net_income
        return data


# =============================================================================
# DATAFRAME CONVERSION
# =============================================================================

def transactions_to_dataframe(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    One row per transaction.

    ``amount`` is the sale total for sales and the spent amount for
    expenses; ``item_count`` is the number of units sold (0 for expenses).
    """
    rows = []
    for txn in transactions:
        is_sale = isinstance(txn, SaleTransaction)
        rows.append({
            "id": txn.id,
            "type": txn.type.value,
            "timestamp": txn.timestamp,
            "amount": txn.amount,
            "worker_id": txn.worker_id,
            "worker_email": txn.worker_email,
            "status": txn.status.value,
            "is_voice_transaction": txn.is_voice_transaction if is_sale else False,
            "item_count": sum(item.quantity for item in txn.items) if is_sale else 0,
        })

    df = pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


def _decimal_sum(series: pd.Series) -> Decimal:
    return sum(series.tolist(), Decimal("0"))


# =============================================================================
# SERVICE
# =============================================================================

class AnalyticsService(BaseService):
    """
    Usage:
        service = AnalyticsService()
        stats = service.calculate_stats(facade.list_transactions(), local_store.get_users())
        print(stats.todays_revenue)
    """

    def calculate_stats(
        self,
        transactions: Iterable[Transaction],
        users: Optional[List[Dict[str, Any]]] = None,
        now: Optional[datetime] = None,
    ) -> TransactionStats:
        """
        Compute dashboard KPIs.

        Only completed transactions count toward money totals. "Today"
        starts at local midnight of ``now``.
        """
        df = transactions_to_dataframe(transactions)
        workers = [u for u in (users or []) if u.get("role") == "worker"]

        if df.empty:
            return TransactionStats(total_workers=len(workers))

        completed = df[df["status"] == TransactionStatus.COMPLETED.value]
        sales = completed[completed["type"] == TransactionType.SALE.value]
        expenses = completed[completed["type"] == TransactionType.EXPENSE.value]

        midnight = pd.Timestamp((now or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0))
        todays_sales = sales[sales["timestamp"] >= midnight]

        total_sales = _decimal_sum(sales["amount"])
        sale_count = len(sales)

        stats = TransactionStats(
            total_sales=total_sales,
            total_expenses=_decimal_sum(expenses["amount"]),
            total_workers=len(workers),
            todays_revenue=_decimal_sum(todays_sales["amount"]),
            total_transactions=sale_count,
            voice_transactions=int(sales["is_voice_transaction"].astype(bool).sum()),
            average_transaction=(total_sales / sale_count) if sale_count else Decimal("0"),
        )
        self.logger.debug(f"Stats over {len(df)} transactions: {stats.to_dict()}")
        return stats

    def sales_by_worker(self, transactions: Iterable[Transaction]) -> pd.DataFrame:
        """Completed sales per worker: count and revenue, highest revenue first."""
        df = transactions_to_dataframe(transactions)
        sales = df[
            (df["type"] == TransactionType.SALE.value)
            & (df["status"] == TransactionStatus.COMPLETED.value)
        ]
        if sales.empty:
            return pd.DataFrame(columns=["worker_email", "sales", "revenue"])

        summary = (
            sales.groupby("worker_email")
            .agg(sales=("id", "count"), revenue=("amount", _decimal_sum))
            .reset_index()
        )
        return summary.sort_values("revenue", ascending=False, key=lambda s: s.map(float)).reset_index(drop=True)

    def summarize(self, transactions: Iterable[Transaction], users: Optional[List[Dict[str, Any]]] = None) -> ServiceResult:
        """calculate_stats wrapped in a ServiceResult for pages."""
        return self.run("Calculating transaction stats", self.calculate_stats, list(transactions), users)
