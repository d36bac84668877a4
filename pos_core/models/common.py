# =============================================================================
# pos_core/models/common.py
# Field coercion helpers shared by the entity models
# =============================================================================

from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Container, Optional

from pos_core.errors.exceptions import ValidationError

LOCAL_ID_PREFIX = "local-"


def is_local_id(value: Any) -> bool:
    """True for ids assigned by the local store rather than a remote backend."""
    return isinstance(value, str) and value.startswith(LOCAL_ID_PREFIX)


def make_local_id(now: datetime, taken: Container[str] = ()) -> str:
    """
    Build a "local-<epoch ms>" id.

    When the id is already in use the millisecond value is bumped until it
    is free, so two writes in the same millisecond still get distinct ids.
    """
    millis = int(now.timestamp() * 1000)
    candidate = f"{LOCAL_ID_PREFIX}{millis}"
    while candidate in taken:
        millis += 1
        candidate = f"{LOCAL_ID_PREFIX}{millis}"
    return candidate


def to_decimal(value: Any, field: str, minimum: Optional[Decimal] = Decimal("0")) -> Decimal:
    """Coerce a money value to Decimal and enforce the lower bound."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field=field, expected="decimal", actual=repr(value))
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field, expected="decimal", actual=repr(value))

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", field=field, actual=str(amount))
    if minimum is not None and amount < minimum:
        raise ValidationError(
            f"{field} must be >= {minimum}", field=field, expected=f">= {minimum}", actual=str(amount)
        )
    return amount


def to_int(value: Any, field: str, minimum: int = 0) -> int:
    """Coerce a count to int and enforce the lower bound."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field, expected="int", actual=repr(value))
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field=field, expected="int", actual=repr(value))
    if number != value and not isinstance(value, str):
        # 2.5 items is not a count
        raise ValidationError(f"{field} must be a whole number", field=field, actual=repr(value))
    if number < minimum:
        raise ValidationError(
            f"{field} must be >= {minimum}", field=field, expected=f">= {minimum}", actual=str(number)
        )
    return number


def require_text(value: Any, field: str) -> str:
    """Non-empty, stripped string."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a stored timestamp back to a naive local datetime.

    Accepts datetimes, ISO-8601 strings (with or without a trailing "Z")
    and epoch milliseconds. Aware values are converted to local time.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Invalid timestamp", field="timestamp", expected="ISO-8601", actual=value)
    else:
        raise ValidationError("Invalid timestamp", field="timestamp", expected="ISO-8601", actual=repr(value))

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def format_decimal(value: Decimal) -> str:
    return str(value)
