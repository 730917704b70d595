"""
Sentry breadcrumbs and timing for provider calls.
"""

import functools
import logging
import time
from typing import Any, Callable

import sentry_sdk

logger = logging.getLogger(__name__)

# Performance thresholds (in seconds)
SLOW_CALL_THRESHOLD = 5.0
CRITICAL_CALL_THRESHOLD = 15.0


def _log_level_for(elapsed: float) -> int:
    if elapsed > CRITICAL_CALL_THRESHOLD:
        return logging.ERROR
    if elapsed > SLOW_CALL_THRESHOLD:
        return logging.WARNING
    return logging.INFO


def track_provider_call(operation: str) -> Callable:
    """Decorator: breadcrumb + duration log around a provider call."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            sentry_sdk.add_breadcrumb(category="provider", message=f"{operation} started", level="info")
            start = time.monotonic()
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                elapsed = time.monotonic() - start
                logger.warning("provider %s failed after %.3fs: %s", operation, elapsed, e)
                sentry_sdk.add_breadcrumb(
                    category="provider",
                    message=f"{operation} failed",
                    level="error",
                    data={"elapsed_s": round(elapsed, 3), "error": type(e).__name__},
                )
                raise

            elapsed = time.monotonic() - start
            logger.log(_log_level_for(elapsed), "provider %s completed in %.3fs", operation, elapsed)
            sentry_sdk.add_breadcrumb(
                category="provider",
                message=f"{operation} completed",
                level="info",
                data={"elapsed_s": round(elapsed, 3)},
            )
            return result

        return wrapper

    return decorator
