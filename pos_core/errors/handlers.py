# =============================================================================
# pos_core/errors/handlers.py
# User feedback for storage outcomes in the Streamlit UI
# =============================================================================

from __future__ import annotations
import functools
from typing import Any, Callable, Optional, Tuple, TypeVar
import streamlit as st

from pos_core.logging import get_logger
from .exceptions import ConnectivityError, POSError, ValidationError

logger = get_logger(__name__)

T = TypeVar("T")


def describe_error(error: Exception) -> Tuple[str, str]:
    """
    Pick the Streamlit channel and text for an error.

    Returns:
        (level, message) where level is "warning" or "error"
    """
    if isinstance(error, ValidationError):
        field = f" ({error.field})" if error.field else ""
        return "warning", f"Please check the form{field}: {error.message}"
    if isinstance(error, ConnectivityError):
        return "warning", f"Working offline: {error.message}"
    if isinstance(error, POSError) and not error.recoverable:
        return "error", f"Critical Error: {error.message}. Please contact support."
    if isinstance(error, POSError):
        return "error", error.message
    return "error", f"Unexpected error: {error}"


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Log an error and, unless told otherwise, show it to the cashier.

    Rejected input is logged as a warning without a traceback; everything
    else is logged as an error with one.
    """
    if isinstance(error, ValidationError):
        logger.warning(f"[{error.code}] {error.message}", extra={"details": error.details})
    elif isinstance(error, POSError):
        logger.error(f"[{error.code}] {error.message}", extra={"details": error.details}, exc_info=error)
    else:
        logger.error(f"Unhandled {type(error).__name__}: {error}", exc_info=error)

    if not show_user_message:
        return

    level, message = describe_error(error)
    if user_message:
        message = user_message
    if level == "warning":
        st.warning(message)
    else:
        st.error(message)

    details = getattr(error, "details", None)
    if details and st.session_state.get("debug_mode", False):
        with st.expander("Error Details", expanded=False):
            st.json(details)


def notify_save_outcome(entity: Any, label: str = "Record") -> str:
    """
    Tell the user where a write ended up.

    A record carrying a local-space id was stored on this device only and
    will be synced later ("saved offline"); anything else reached the
    active remote backend.

    Returns:
        "offline" or "saved"
    """
    from pos_core.models import is_local_id

    entity_id = getattr(entity, "id", "")
    if is_local_id(entity_id):
        st.toast(f"{label} saved offline. It will sync when the connection returns.")
        logger.info(f"{label} {entity_id} saved offline")
        return "offline"

    st.toast(f"{label} saved")
    return "saved"


def guarded_write(label: str):
    """
    Decorator for UI callbacks that save one record through the facade.

    On success the save outcome is announced; on failure the error is
    shown and None is returned, so a form handler never crashes the page.

    Usage:
        @guarded_write("Sale")
        def record_sale(draft):
            return ctx.facade.create_transaction(draft)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                record = func(*args, **kwargs)
            except Exception as e:
                handle_error(e)
                return None
            notify_save_outcome(record, label)
            return record

        return wrapper

    return decorator
