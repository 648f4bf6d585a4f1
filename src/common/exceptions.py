"""
Android Store Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, host feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any, Iterable


class StoreError(Exception):
    """
    Base exception for all store adapter errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Connection errors
# =============================================================================

class StoreConnectionError(StoreError):
    """Failed to obtain a handle on the store service."""
    def __init__(self, bus_name: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Cannot connect to store service {bus_name}: {reason}",
            code="STORE_CONNECTION_FAILED",
            details={"bus_name": bus_name},
            cause=cause,
        )


# =============================================================================
# Remote call errors
# =============================================================================

class RemoteCallError(StoreError):
    """
    The store service answered a call with an error.

    Only the remote error name and its text are kept; the D-Bus
    envelope is never part of the message.
    """
    def __init__(self, method: str, error_name: str, text: str):
        super().__init__(
            text or error_name,
            code="REMOTE_CALL_FAILED",
            details={"method": method, "error_name": error_name},
        )
        self.method = method
        self.error_name = error_name


class UpgradeFailedError(RemoteCallError):
    """UpgradePackages reported failure."""
    def __init__(self, packages: Iterable[str]):
        super().__init__(
            "UpgradePackages",
            "org.freedesktop.DBus.Error.Failed",
            "Failed to upgrade packages",
        )
        self.details["packages"] = list(packages)


class OperationCancelledError(StoreError):
    """Operation was cancelled before it completed."""
    def __init__(self, operation: str):
        super().__init__(
            f"Operation '{operation}' was cancelled",
            code="OPERATION_CANCELLED",
            details={"operation": operation},
        )


class DecodeError(StoreError):
    """Reply payload could not be decoded."""
    def __init__(self, method: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Malformed reply from {method}: {reason}",
            code="DECODE_FAILED",
            details={"method": method},
            cause=cause,
        )


# =============================================================================
# Unsupported requests
# =============================================================================

class UnsupportedError(StoreError):
    """Base for requests this adapter does not implement."""
    pass


class UnsupportedQueryError(UnsupportedError):
    """Query shape is not supported."""
    def __init__(self, reason: str = "Unsupported query"):
        super().__init__(reason, code="UNSUPPORTED_QUERY")


class UnsupportedFlagsError(UnsupportedError):
    """Requested flags are not implemented."""
    def __init__(self, operation: str, flags: Any):
        super().__init__(
            "Unsupported flags",
            code="UNSUPPORTED_FLAGS",
            details={"operation": operation, "flags": str(flags)},
        )


class UnsupportedOperationError(UnsupportedError):
    """Operation cannot be carried out on the given targets."""
    def __init__(self, message: str, count: int):
        super().__init__(
            message,
            code="UNSUPPORTED_OPERATION",
            details={"count": count},
        )


# =============================================================================
# Model errors
# =============================================================================

class InvalidAppKindError(StoreError):
    """An app of the wrong kind was passed to an operation."""
    def __init__(self, app_id: str, kind: str, operation: str):
        super().__init__(
            f"Cannot {operation} '{app_id}' of kind '{kind}'",
            code="INVALID_APP_KIND",
            details={"app_id": app_id, "kind": kind, "operation": operation},
            recoverable=False,
        )


class StateTransitionError(StoreError):
    """Invalid app state transition."""
    def __init__(self, app_id: str, current_state: str, new_state: str):
        super().__init__(
            f"App '{app_id}' cannot move from '{current_state}' to '{new_state}'",
            code="INVALID_STATE_TRANSITION",
            details={
                "app_id": app_id,
                "current_state": current_state,
                "new_state": new_state,
            },
            recoverable=False,
        )


class LaunchError(StoreError):
    """App could not be launched."""
    def __init__(self, app_id: str, reason: str):
        super().__init__(
            f"Failed to launch '{app_id}': {reason}",
            code="LAUNCH_FAILED",
            details={"app_id": app_id, "reason": reason},
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(StoreError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )
