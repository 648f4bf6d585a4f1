"""
Android Store Common Utilities

Shared error types, logging and decorators for the store adapter.
"""

from .exceptions import (
    StoreError, StoreConnectionError, RemoteCallError, UpgradeFailedError,
    OperationCancelledError, DecodeError, UnsupportedError, UnsupportedQueryError,
    UnsupportedFlagsError, UnsupportedOperationError, InvalidAppKindError,
    StateTransitionError, LaunchError, ConfigError, InvalidConfigError,
)
from .decorators import ensure_connected, timed
from .logging_config import setup_logging, LogContext

__all__ = [
    # Exceptions
    "StoreError", "StoreConnectionError", "RemoteCallError", "UpgradeFailedError",
    "OperationCancelledError", "DecodeError", "UnsupportedError", "UnsupportedQueryError",
    "UnsupportedFlagsError", "UnsupportedOperationError", "InvalidAppKindError",
    "StateTransitionError", "LaunchError", "ConfigError", "InvalidConfigError",
    # Decorators
    "ensure_connected", "timed",
    # Logging
    "setup_logging", "LogContext",
]
