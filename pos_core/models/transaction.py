# =============================================================================
# pos_core/models/transaction.py
# Sale / expense ledger entities
# =============================================================================
"""
Transactions are a tagged union on ``type``:

- ``sale``: line items, totals, payment and change
- ``expense``: description, amount and category

The ledger is append-only. A sale whose payment does not cover its total
is rejected when the draft is built, so a stored sale never carries a
negative change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pos_core.errors.exceptions import ValidationError
from pos_core.models.common import (
    format_decimal,
    format_timestamp,
    is_local_id,
    optional_text,
    parse_timestamp,
    require_text,
    to_decimal,
    to_int,
)
from pos_core.models.enums import PaymentMethod, TransactionStatus, TransactionType


def _parse_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid {field_name}", field=field_name, expected=allowed, actual=str(value)
        )


@dataclass
class SaleItem:
    """One line of a sale. ``total`` is derived from quantity and unit price."""
    product_id: str
    product_name: str
    quantity: int
    price: Decimal
    total: Optional[Decimal] = None

    def __post_init__(self):
        self.product_id = require_text(self.product_id, "product_id")
        self.product_name = require_text(self.product_name, "product_name")
        self.quantity = to_int(self.quantity, "quantity", minimum=1)
        self.price = to_decimal(self.price, "price")

        expected = self.price * self.quantity
        if self.total is None:
            self.total = expected
        else:
            self.total = to_decimal(self.total, "total")
            if self.total != expected:
                raise ValidationError(
                    "Line total does not match quantity x price",
                    field="total",
                    expected=str(expected),
                    actual=str(self.total),
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": format_decimal(self.price),
            "total": format_decimal(self.total),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SaleItem:
        return cls(
            product_id=data.get("product_id"),
            product_name=data.get("product_name"),
            quantity=data.get("quantity"),
            price=data.get("price"),
            total=data.get("total"),
        )


# =============================================================================
# DRAFTS (input, no id yet)
# =============================================================================

@dataclass
class SaleDraft:
    items: List[SaleItem]
    amount_paid: Decimal
    worker_id: str
    worker_email: str
    payment_method: PaymentMethod = PaymentMethod.CASH
    is_voice_transaction: bool = False
    voice_input: Optional[str] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if not self.items:
            raise ValidationError("A sale needs at least one item", field="items")
        self.items = [item if isinstance(item, SaleItem) else SaleItem.from_dict(item) for item in self.items]
        self.amount_paid = to_decimal(self.amount_paid, "amount_paid")
        self.worker_id = require_text(self.worker_id, "worker_id")
        self.worker_email = require_text(self.worker_email, "worker_email")
        self.payment_method = _parse_enum(PaymentMethod, self.payment_method, "payment_method")
        self.status = _parse_enum(TransactionStatus, self.status, "status")
        self.is_voice_transaction = bool(self.is_voice_transaction)
        self.voice_input = optional_text(self.voice_input)
        if self.timestamp is not None:
            self.timestamp = parse_timestamp(self.timestamp)

        if self.amount_paid < self.total_amount:
            raise ValidationError(
                "Insufficient payment",
                field="amount_paid",
                expected=f">= {self.total_amount}",
                actual=str(self.amount_paid),
            )

    @property
    def type(self) -> TransactionType:
        return TransactionType.SALE

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    @property
    def change(self) -> Decimal:
        return self.amount_paid - self.total_amount

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "items": [item.to_dict() for item in self.items],
            "total_amount": format_decimal(self.total_amount),
            "amount_paid": format_decimal(self.amount_paid),
            "change": format_decimal(self.change),
            "payment_method": self.payment_method.value,
            "worker_id": self.worker_id,
            "worker_email": self.worker_email,
            "is_voice_transaction": self.is_voice_transaction,
            "voice_input": self.voice_input,
            "status": self.status.value,
        }
        if self.timestamp is not None:
            data["timestamp"] = format_timestamp(self.timestamp)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SaleDraft:
        return cls(
            items=data.get("items") or [],
            amount_paid=data.get("amount_paid"),
            worker_id=data.get("worker_id"),
            worker_email=data.get("worker_email"),
            payment_method=data.get("payment_method", PaymentMethod.CASH.value),
            is_voice_transaction=data.get("is_voice_transaction", False),
            voice_input=data.get("voice_input"),
            status=data.get("status", TransactionStatus.COMPLETED.value),
            timestamp=data.get("timestamp"),
        )


@dataclass
class ExpenseDraft:
    description: str
    amount: Decimal
    category: str
    worker_id: str
    worker_email: str
    notes: Optional[str] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        self.description = require_text(self.description, "description")
        self.amount = to_decimal(self.amount, "amount")
        self.category = require_text(self.category, "category")
        self.worker_id = require_text(self.worker_id, "worker_id")
        self.worker_email = require_text(self.worker_email, "worker_email")
        self.notes = optional_text(self.notes)
        self.status = _parse_enum(TransactionStatus, self.status, "status")
        if self.timestamp is not None:
            self.timestamp = parse_timestamp(self.timestamp)

    @property
    def type(self) -> TransactionType:
        return TransactionType.EXPENSE

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "description": self.description,
            "amount": format_decimal(self.amount),
            "category": self.category,
            "notes": self.notes,
            "worker_id": self.worker_id,
            "worker_email": self.worker_email,
            "status": self.status.value,
        }
        if self.timestamp is not None:
            data["timestamp"] = format_timestamp(self.timestamp)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExpenseDraft:
        return cls(
            description=data.get("description"),
            amount=data.get("amount"),
            category=data.get("category"),
            worker_id=data.get("worker_id"),
            worker_email=data.get("worker_email"),
            notes=data.get("notes"),
            status=data.get("status", TransactionStatus.COMPLETED.value),
            timestamp=data.get("timestamp"),
        )


TransactionDraft = Union[SaleDraft, ExpenseDraft]


# =============================================================================
# STORED TRANSACTIONS
# =============================================================================

@dataclass
class SaleTransaction:
    id: str
    draft: SaleDraft
    timestamp: datetime = field(default_factory=datetime.now)

    type = TransactionType.SALE

    @property
    def items(self) -> List[SaleItem]:
        return self.draft.items

    @property
    def total_amount(self) -> Decimal:
        return self.draft.total_amount

    @property
    def amount_paid(self) -> Decimal:
        return self.draft.amount_paid

    @property
    def change(self) -> Decimal:
        return self.draft.change

    @property
    def payment_method(self) -> PaymentMethod:
        return self.draft.payment_method

    @property
    def worker_id(self) -> str:
        return self.draft.worker_id

    @property
    def worker_email(self) -> str:
        return self.draft.worker_email

    @property
    def status(self) -> TransactionStatus:
        return self.draft.status

    @property
    def is_voice_transaction(self) -> bool:
        return self.draft.is_voice_transaction

    @property
    def voice_input(self) -> Optional[str]:
        return self.draft.voice_input

    @property
    def amount(self) -> Decimal:
        """Ledger amount (the sale total)."""
        return self.total_amount

    @property
    def is_local(self) -> bool:
        return is_local_id(self.id)

    def to_dict(self) -> Dict[str, Any]:
        data = self.draft.to_dict()
        data["id"] = self.id
        data["timestamp"] = format_timestamp(self.timestamp)
        return data


@dataclass
class ExpenseTransaction:
    id: str
    draft: ExpenseDraft
    timestamp: datetime = field(default_factory=datetime.now)

    type = TransactionType.EXPENSE

    @property
    def description(self) -> str:
        return self.draft.description

    @property
    def amount(self) -> Decimal:
        return self.draft.amount

    @property
    def category(self) -> str:
        return self.draft.category

    @property
    def notes(self) -> Optional[str]:
        return self.draft.notes

    @property
    def worker_id(self) -> str:
        return self.draft.worker_id

    @property
    def worker_email(self) -> str:
        return self.draft.worker_email

    @property
    def status(self) -> TransactionStatus:
        return self.draft.status

    @property
    def is_local(self) -> bool:
        return is_local_id(self.id)

    def to_dict(self) -> Dict[str, Any]:
        data = self.draft.to_dict()
        data["id"] = self.id
        data["timestamp"] = format_timestamp(self.timestamp)
        return data


Transaction = Union[SaleTransaction, ExpenseTransaction]


def draft_from_dict(data: Dict[str, Any]) -> TransactionDraft:
    """Rebuild a draft from its dict form, dispatching on ``type``."""
    kind = _parse_enum(TransactionType, data.get("type"), "type")
    if kind is TransactionType.SALE:
        return SaleDraft.from_dict(data)
    return ExpenseDraft.from_dict(data)


def build_transaction(
    draft: TransactionDraft,
    transaction_id: str,
    timestamp: Optional[datetime] = None,
) -> Transaction:
    """Attach an id (and timestamp, unless the draft carries one) to a draft."""
    when = draft.timestamp or timestamp or datetime.now()
    if isinstance(draft, SaleDraft):
        return SaleTransaction(id=str(transaction_id), draft=draft, timestamp=when)
    return ExpenseTransaction(id=str(transaction_id), draft=draft, timestamp=when)


def transaction_from_dict(data: Dict[str, Any]) -> Transaction:
    draft = draft_from_dict(data)
    timestamp = parse_timestamp(data["timestamp"]) if data.get("timestamp") else None
    return build_transaction(draft, require_text(data.get("id"), "id"), timestamp)


