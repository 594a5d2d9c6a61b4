"""
Unified exception hierarchy for the Azure toolkit.

Provides typed exceptions with retry classification so the poll cycle
controller and the health check can convert provider failures into
typed outcomes instead of letting them escape to the scheduler.
"""

from core.types import ErrorCategory


class ToolkitError(Exception):
    """
    Base exception for all toolkit errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    @property
    def should_refresh_auth(self) -> bool:
        return self.category == ErrorCategory.AUTH

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Configuration Errors (Permanent)
# =============================================================================


class ConfigurationError(ToolkitError):
    """Missing or invalid queue name, credential, or numeric setting.

    Surfaced immediately as a failed block status and never retried
    automatically.
    """

    category = ErrorCategory.PERMANENT


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(ToolkitError):
    """Credential rejected by the namespace (expired token, bad key)."""

    category = ErrorCategory.AUTH


# =============================================================================
# Transport Errors (Transient)
# =============================================================================


class ConnectivityError(ToolkitError):
    """Transport failure while opening a session, receiving or peeking."""

    category = ErrorCategory.TRANSIENT


class AcknowledgmentError(ToolkitError):
    """The provider rejected completion of a received message.

    Aborts the remainder of the current batch. Messages emitted before the
    failure stand.
    """

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        message_id: str = "",
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.message_id = message_id


# =============================================================================
# Classification Utilities
# =============================================================================

# Markers for string-based detection (fallback for non-ToolkitError exceptions)
AUTH_ERROR_MARKERS = frozenset(
    {
        "401",
        "unauthorized",
        "authentication",
        "token expired",
        "invalid token",
        "access token",
        "expiredtoken",
        "invalidsignature",
    }
)

TRANSIENT_ERROR_MARKERS = frozenset(
    {
        "503",
        "502",
        "504",
        "timeout",
        "timed out",
        "connection",
        "server busy",
        "throttl",
        "temporarily unavailable",
        "service unavailable",
    }
)

PERMANENT_ERROR_MARKERS = frozenset(
    {
        "404",
        "not found",
        "does not exist",
        "messagingentitynotfound",
        "forbidden",
        "403",
    }
)


def is_auth_error(exc: Exception) -> bool:
    """Check if exception is authentication-related."""
    if isinstance(exc, ToolkitError):
        return exc.category == ErrorCategory.AUTH

    error_str = str(exc).lower()
    return any(marker in error_str for marker in AUTH_ERROR_MARKERS)


def is_transient_error(exc: Exception) -> bool:
    """Check if exception is transient (may succeed on the next cycle)."""
    if isinstance(exc, ToolkitError):
        return exc.category == ErrorCategory.TRANSIENT

    error_str = str(exc).lower()
    return any(marker in error_str for marker in TRANSIENT_ERROR_MARKERS)


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, ToolkitError):
        return exc.category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    if "authentication" in exc_type or any(m in exc_str for m in AUTH_ERROR_MARKERS):
        return ErrorCategory.AUTH

    if "timeout" in exc_type or "connection" in exc_type:
        return ErrorCategory.TRANSIENT

    if any(m in exc_str for m in PERMANENT_ERROR_MARKERS):
        return ErrorCategory.PERMANENT

    if any(m in exc_str for m in TRANSIENT_ERROR_MARKERS):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type = ConnectivityError,
    context: dict | None = None,
) -> ToolkitError:
    """Wrap a generic exception in the appropriate ToolkitError subclass."""
    if isinstance(exc, ToolkitError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    context = context or {}

    if category == ErrorCategory.AUTH:
        return AuthError(str(exc), cause=exc, context=context)

    if category == ErrorCategory.PERMANENT:
        context.setdefault("error_type", "permanent")

    return default_class(str(exc), cause=exc, context=context)


def describe_exception(exc: BaseException) -> str:
    """Flatten an exception into a single human-readable description.

    Exception groups (several connection attempts failing together) are
    rendered as ``ExceptionGroup: first; second``.
    """
    if isinstance(exc, BaseExceptionGroup):
        messages = [describe_exception(inner) for inner in exc.exceptions]
        return f"ExceptionGroup: {'; '.join(messages)}"
    return str(exc) or type(exc).__name__
