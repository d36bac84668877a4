# =============================================================================
# pos_core/models/enums.py
# Enumerations shared by the storage layer
# =============================================================================

from enum import Enum


class BackendKind(Enum):
    """Storage backends the app can run against."""
    SUPABASE = "supabase"
    FIREBASE = "firebase"
    NEON = "neon"
    LOCAL = "local"

    @property
    def is_remote(self) -> bool:
        return self is not BackendKind.LOCAL

    @classmethod
    def parse(cls, value) -> "BackendKind":
        """Accept a BackendKind or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


DEFAULT_PRIORITY = (
    BackendKind.SUPABASE,
    BackendKind.FIREBASE,
    BackendKind.NEON,
    BackendKind.LOCAL,
)


class EntityType(Enum):
    """Entity collections routed through the data access facade."""
    PRODUCTS = "products"
    TRANSACTIONS = "transactions"


class TransactionType(Enum):
    SALE = "sale"
    EXPENSE = "expense"


class TransactionStatus(Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"
