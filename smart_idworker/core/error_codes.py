"""
Error Codes

Standardized error codes for smart-idworker.
"""

from enum import StrEnum
from types import MappingProxyType
from typing import Any, Dict, Mapping


class ErrorCode(StrEnum):
    """Base error code enum (string-based)."""


class ConfigurationErrorCode(ErrorCode):
    """Configuration-related error codes."""

    MISSING_CONFIG = "CONFIGURATION_MISSING_CONFIG"
    ALREADY_INITIALIZED = "CONFIGURATION_ALREADY_INITIALIZED"


class RedisErrorCode(ErrorCode):
    """Redis-related error codes."""

    CONNECTION_FAILED = "REDIS_CONNECTION_FAILED"
    OPERATION_FAILED = "REDIS_OPERATION_FAILED"


class IdWorkerErrorCode(ErrorCode):
    """Id generation error codes."""

    INVALID_DATACENTER_ID = "IDWORKER_INVALID_DATACENTER_ID"
    INVALID_WORKER_ID = "IDWORKER_INVALID_WORKER_ID"
    INVALID_COMPONENT = "IDWORKER_INVALID_COMPONENT"
    INVALID_BATCH_SIZE = "IDWORKER_INVALID_BATCH_SIZE"
    CLOCK_MOVED_BACKWARD = "IDWORKER_CLOCK_MOVED_BACKWARD"
    CLOCK_BEFORE_EPOCH = "IDWORKER_CLOCK_BEFORE_EPOCH"
    TIMESTAMP_OVERFLOW = "IDWORKER_TIMESTAMP_OVERFLOW"
    ASSIGNMENT_FAILED = "IDWORKER_ASSIGNMENT_FAILED"


# Error code to retryability mapping
#
# CONVENTIONS FOR ADDING NEW ERROR CODES:
# 1. Error code names should be descriptive and use UPPER_SNAKE_CASE
# 2. Error code values MUST include domain prefixes for global uniqueness:
#    CONFIGURATION_*, REDIS_*, IDWORKER_*
# 3. Always add the corresponding entry in this dictionary
# 4. True means the same call may succeed later without changing its input
#    (clock caught up, Redis reachable again); False means the caller has to
#    fix its input or configuration first
#
ERROR_CODE_MAP: Mapping[ErrorCode, bool] = MappingProxyType(
    {
        # Configuration errors
        ConfigurationErrorCode.MISSING_CONFIG: False,
        ConfigurationErrorCode.ALREADY_INITIALIZED: False,
        # Redis errors
        RedisErrorCode.CONNECTION_FAILED: True,
        RedisErrorCode.OPERATION_FAILED: True,
        # Id worker errors
        IdWorkerErrorCode.INVALID_DATACENTER_ID: False,
        IdWorkerErrorCode.INVALID_WORKER_ID: False,
        IdWorkerErrorCode.INVALID_COMPONENT: False,
        IdWorkerErrorCode.INVALID_BATCH_SIZE: False,
        IdWorkerErrorCode.CLOCK_MOVED_BACKWARD: True,
        IdWorkerErrorCode.CLOCK_BEFORE_EPOCH: False,
        IdWorkerErrorCode.TIMESTAMP_OVERFLOW: False,
        IdWorkerErrorCode.ASSIGNMENT_FAILED: True,
    }
)


def is_retryable(error_code: ErrorCode | str) -> bool:
    """
    Tell whether an error may go away if the same call is retried later.

    Args:
        error_code: Error code enum or string

    Returns:
        Retryability flag (defaults to False if the code is unknown)
    """
    if isinstance(error_code, ErrorCode):
        return ERROR_CODE_MAP.get(error_code, False)

    for code, retryable in ERROR_CODE_MAP.items():
        if code.value == error_code:
            return retryable
    return False


def get_error_info(error_code: ErrorCode | str) -> Dict[str, Any]:
    """
    Get error information including retryability.

    Args:
        error_code: Error code enum or string

    Returns:
        Dictionary with error information
    """
    code_value = error_code.value if isinstance(error_code, ErrorCode) else error_code
    return {"error_code": code_value, "retryable": is_retryable(error_code)}
