# =============================================================================
# pos_core/logging/config.py
# Logging Configuration for Charnoks POS
# =============================================================================

import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(threadName)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_DIR = Path("logs")

# HTTP clients and SDKs under the storage backends log every request at INFO
NOISY_LOGGERS = ("urllib3", "requests", "httpx", "httpcore", "hpack", "supabase", "postgrest")


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get("POS_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    level: Union[int, str, None] = None,
    log_to_file: bool = False,
    log_dir: Optional[Path] = None,
    log_filename: Optional[str] = None,
) -> None:
    """
    Configure logging for the POS process.

    Args:
        level: Level number or name (default: POS_LOG_LEVEL or INFO)
        log_to_file: Also write to logs/pos_YYYY-MM-DD.log
        log_dir: Directory for the log file
        log_filename: Custom log filename
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        directory = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        filename = log_filename or f"pos_{datetime.now():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(directory / filename, encoding="utf-8"))

    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("pos_core").debug("Logging initialized")


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from pos_core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


class LogContext:
    """
    Times a block and logs how it ended.

    Usage:
        with LogContext(logger, "Testing database connections"):
            selector.initialize()
        # Testing database connections... started
        # Testing database connections... completed in 1210ms
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.elapsed_ms: Optional[int] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "LogContext":
        self._started = time.monotonic()
        self.logger.log(self.level, f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed_ms = int((time.monotonic() - self._started) * 1000)
        if exc_type is None:
            self.logger.log(self.level, f"{self.operation}... completed in {self.elapsed_ms}ms")
        else:
            self.logger.error(
                f"{self.operation}... failed after {self.elapsed_ms}ms: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
