"""
Coroutine Decorators

Connection guards and timing for the store adapter's async methods.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Callable

from .exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


def ensure_connected(connection_attr: str = "_connection"):
    """
    Decorator to ensure a connection is established before awaiting a method.

    Args:
        connection_attr: Name of the connection attribute on self

    Example:
        @ensure_connected("_connection")
        async def list_apps(self, query):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            conn = getattr(self, connection_attr, None)
            if conn is None:
                bus_name = getattr(getattr(self, "config", None), "bus_name", "store")
                raise StoreConnectionError(
                    bus_name,
                    f"not set up, call setup() before {func.__name__}()",
                )
            return await func(self, *args, **kwargs)
        return wrapper
    return decorator


def timed(func: Callable) -> Callable:
    """
    Decorator to log coroutine execution time.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            logger.debug(f"{func.__name__} completed in {elapsed:.3f}s")
    return wrapper
