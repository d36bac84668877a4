# =============================================================================
# pos_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from pos_core.logging import get_logger, LogContext
from pos_core.errors import handle_error, POSError


@dataclass(frozen=True)
class ServiceResult:
    """What a service call hands back to a page: data or a displayable error."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, **metadata) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        if isinstance(e, POSError):
            return cls(success=False, error=e.message, error_code=e.code, metadata=dict(e.details))
        return cls(success=False, error=str(e), error_code="UNKNOWN")

    def unwrap(self) -> Any:
        """The data, or RuntimeError carrying the failure message."""
        if not self.success:
            raise RuntimeError(f"[{self.error_code}] {self.error}")
        return self.data


class BaseService:
    """
    Services read from the storage facade and return ServiceResults, so
    pages never see a raw exception.

    Usage:
        class ReportService(BaseService):
            def daily(self, transactions) -> ServiceResult:
                return self.run("Building daily report", self._daily, transactions)
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def run(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> ServiceResult:
        """Call ``func`` inside a timed log context and wrap the outcome."""
        try:
            with LogContext(self.logger, operation):
                return ServiceResult.ok(func(*args, **kwargs))
        except Exception as e:
            handle_error(e, show_user_message=False)
            return ServiceResult.from_exception(e)
