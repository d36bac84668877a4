# =============================================================================
# pos_core/models/__init__.py
# Normalized entity schema used by every storage backend
# =============================================================================

from pos_core.models.enums import (
    BackendKind,
    DEFAULT_PRIORITY,
    EntityType,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)
from pos_core.models.common import (
    LOCAL_ID_PREFIX,
    is_local_id,
    make_local_id,
    parse_timestamp,
)
from pos_core.models.product import Product, ProductDraft
from pos_core.models.transaction import (
    ExpenseDraft,
    ExpenseTransaction,
    SaleDraft,
    SaleItem,
    SaleTransaction,
    Transaction,
    TransactionDraft,
    build_transaction,
    draft_from_dict,
    transaction_from_dict,
)

__all__ = [
    "BackendKind",
    "DEFAULT_PRIORITY",
    "EntityType",
    "PaymentMethod",
    "TransactionStatus",
    "TransactionType",
    "LOCAL_ID_PREFIX",
    "is_local_id",
    "make_local_id",
    "parse_timestamp",
    "Product",
    "ProductDraft",
    "ExpenseDraft",
    "ExpenseTransaction",
    "SaleDraft",
    "SaleItem",
    "SaleTransaction",
    "Transaction",
    "TransactionDraft",
    "build_transaction",
    "draft_from_dict",
    "transaction_from_dict",
]
