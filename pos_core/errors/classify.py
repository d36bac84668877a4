# =============================================================================
# pos_core/errors/classify.py
# Connectivity vs data error classification
# =============================================================================

from __future__ import annotations
import socket
from typing import Any

from .exceptions import BackendError, ConnectivityError, FatalLocalError, ValidationError

# HTTP statuses that mean "cannot use this backend right now"
CONNECTIVITY_STATUS_CODES = {401, 403, 407, 408, 429, 500, 502, 503, 504}

CONNECTIVITY_CODE_MARKERS = (
    "network",
    "permission-denied",
    "permission_denied",
    "insufficient-permissions",
    "unavailable",
    "deadline-exceeded",
    "unauthenticated",
    "42501",      # postgres insufficient_privilege
    "pgrst301",   # postgrest JWT rejected
    "pgrst302",
)

CONNECTIVITY_MESSAGE_MARKERS = (
    "fetch",
    "network",
    "timeout",
    "timed out",
    "permission",
    "connection",
    "unreachable",
)

CONNECTIVITY_TYPE_MARKERS = ("timeout", "connect", "network", "transport")


def is_connectivity_error(error: Any) -> bool:
    """
    Decide whether an error means the backend is unreachable or refusing us.

    Network failures, timeouts and permission problems count; validation
    and other data errors (duplicate keys, bad input) do not.
    """
    if error is None:
        return False
    if isinstance(error, ConnectivityError):
        return True
    if isinstance(error, (ValidationError, FatalLocalError)):
        return False
    if isinstance(error, (TimeoutError, socket.timeout, ConnectionError)):
        return True
    if isinstance(error, BackendError):
        return error.status_code in CONNECTIVITY_STATUS_CODES

    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, int) and status in CONNECTIVITY_STATUS_CODES:
        return True

    code = str(getattr(error, "code", "") or "").lower()
    if code and any(marker in code for marker in CONNECTIVITY_CODE_MARKERS):
        return True

    type_name = type(error).__name__.lower()
    if any(marker in type_name for marker in CONNECTIVITY_TYPE_MARKERS):
        return True

    message = str(getattr(error, "message", "") or error).lower()
    return any(marker in message for marker in CONNECTIVITY_MESSAGE_MARKERS)
