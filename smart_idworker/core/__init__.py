"""
Core Package

Configuration, error handling, and logging for smart-idworker.
"""

# ruff: noqa: F401  # All imports are re-exported via __all__

from .config import Settings, settings  # noqa: F401
from .error_codes import (  # noqa: F401
    ERROR_CODE_MAP,
    ConfigurationErrorCode,
    ErrorCode,
    IdWorkerErrorCode,
    RedisErrorCode,
    get_error_info,
    is_retryable,
)
from .exceptions import (  # noqa: F401
    ApplicationException,
    ClockMovedBackwardException,
    ConfigurationException,
    InvalidArgumentException,
    RedisException,
    WorkerIdAssignmentException,
)
from .logger import get_logger  # noqa: F401

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Error handling
    "ErrorCode",
    "ConfigurationErrorCode",
    "IdWorkerErrorCode",
    "RedisErrorCode",
    "ERROR_CODE_MAP",
    "is_retryable",
    "get_error_info",
    # Exceptions
    "ApplicationException",
    "ClockMovedBackwardException",
    "ConfigurationException",
    "InvalidArgumentException",
    "RedisException",
    "WorkerIdAssignmentException",
    # Logger
    "get_logger",
]
