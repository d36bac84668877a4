# =============================================================================
# pos_core/services/__init__.py
# Service Layer for Charnoks POS
# Separates business logic from UI presentation
# =============================================================================
"""
Service Layer for Charnoks POS

Usage Example:
-------------
    from pos_core.offline import get_storage_context
    from pos_core.services import AnalyticsService

    ctx = get_storage_context()
    stats = AnalyticsService().calculate_stats(
        ctx.facade.list_transactions(),
        ctx.local_store.get_users(),
    )
    print(f"Today's revenue: {stats.todays_revenue}")
"""

from .base_service import BaseService, ServiceResult
from .analytics_service import AnalyticsService, TransactionStats, transactions_to_dataframe

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Analytics
    "AnalyticsService",
    "TransactionStats",
    "transactions_to_dataframe",
]
