# =============================================================================
# pos_core/errors/__init__.py
# Centralized Error Handling for Charnoks POS
# =============================================================================

from .exceptions import (
    POSError,
    ConnectivityError,
    BackendError,
    FatalLocalError,
    ValidationError,
    ConfigurationError,
)

from .classify import is_connectivity_error

from .handlers import (
    describe_error,
    handle_error,
    notify_save_outcome,
    guarded_write,
)

__all__ = [
    # Exceptions
    "POSError",
    "ConnectivityError",
    "BackendError",
    "FatalLocalError",
    "ValidationError",
    "ConfigurationError",
    # Classification
    "is_connectivity_error",
    # Handlers
    "describe_error",
    "handle_error",
    "notify_save_outcome",
    "guarded_write",
]
