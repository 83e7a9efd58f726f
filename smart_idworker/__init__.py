"""
smart-idworker Package

Snowflake-style distributed 64-bit id generation with shared-counter worker
identity assignment.
"""

__version__ = "0.1.0"

__all__ = [
    "core",
    "stores",
    "utils",
]
