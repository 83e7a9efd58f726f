"""
Logfire Configuration Module

Logfire configuration and Redis instrumentation for smart-idworker.

Usage:
    from smart_idworker.core.logfire_config import initialize_logfire

    results = initialize_logfire()  # idempotent; safe to call at startup
    # results: {"configured": bool, "instrumentation": {"redis": bool}}
"""

import logging
from typing import Any, Dict

import logfire

from smart_idworker.core.config import settings
from smart_idworker.core.logger import setup_logfire_handler


class _LogfireState:
    """Internal state management for logfire configuration."""

    def __init__(self) -> None:
        self.configured = False
        self.instrumented = False
        self.instrument_results: Dict[str, bool] = {"redis": False}

    def get_instrument_results(self) -> Dict[str, bool]:
        """Get a copy of the current instrumentation results."""
        return self.instrument_results.copy()


_state = _LogfireState()


def setup_logfire() -> bool:
    """
    Set up basic logfire configuration.

    Returns:
        bool: True if logfire was successfully configured, False otherwise
    """
    logger = logging.getLogger("smart_idworker.logfire")

    if not settings.logfire__enabled or _state.configured:
        return _state.configured

    try:
        config_kwargs: Dict[str, Any] = {
            "service_name": settings.logfire__service_name,
            "environment": settings.logfire__environment,
        }
        if settings.logfire__token:
            config_kwargs["token"] = settings.logfire__token.get_secret_value()

        logfire.configure(**config_kwargs)
        logging.getLogger("smart_idworker.startup").info(
            "Logfire initialized for service: %s", settings.logfire__service_name
        )

        setup_logfire_handler()

        _state.configured = True
        return True

    except Exception as e:
        logger.error("Failed to initialize logfire: %s", e)
        return False


def instrument_logfire() -> Dict[str, bool]:
    """
    Set up logfire instrumentation for the Redis client.

    Returns:
        dict: Dictionary with instrumentation results for each library
    """
    logger = logging.getLogger("smart_idworker.logfire")

    if not settings.logfire__enabled or _state.instrumented:
        return _state.get_instrument_results()

    if settings.logfire__instrument__redis:
        try:
            logfire.instrument_redis()
            logger.info("Logfire Redis instrumentation enabled")
            _state.instrument_results["redis"] = True
        except Exception as e:
            logger.warning("Failed to instrument Redis with logfire: %s", e)

    _state.instrumented = True
    return _state.get_instrument_results()


def initialize_logfire() -> Dict[str, Any]:
    """
    Complete logfire initialization including configuration and instrumentation.

    Returns:
        dict: Initialization results with status for each component
    """
    results: Dict[str, Any] = {"configured": False, "instrumentation": {"redis": False}}

    results["configured"] = setup_logfire()
    if results["configured"]:
        results["instrumentation"].update(instrument_logfire())

    return results
