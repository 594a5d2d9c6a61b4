"""
Service Bus error classification for session, receive and settlement operations.

Provides consistent error handling for azure-servicebus and azure-core
exceptions, mapping them to the typed ToolkitError hierarchy so the poll
cycle controller can report typed outcomes.
"""

from core.errors.exceptions import (
    AcknowledgmentError,
    AuthError,
    ConnectivityError,
    ToolkitError,
    classify_exception,
    describe_exception,
)
from core.types import ErrorCategory

# Azure Service Bus error classifications based on azure-servicebus / azure-core exception names
SERVICEBUS_ERROR_MAPPINGS = {
    # Transient errors (the next poll cycle may succeed)
    "transient": [
        "ServiceBusConnectionError",
        "ServiceBusCommunicationError",
        "OperationTimeoutError",
        "ServiceBusServerBusyError",
        "ServiceRequestError",
        "ServiceResponseError",
        "AMQPConnectionError",
        "MessageLockLostError",
        "SessionLockLostError",
    ],
    # Auth errors (credential must be replaced)
    "auth": [
        "ServiceBusAuthenticationError",
        "ServiceBusAuthorizationError",
        "ClientAuthenticationError",
        "AuthenticationError",
    ],
    # Permanent errors (configuration problem on the namespace side)
    "permanent": [
        "MessagingEntityNotFoundError",
        "MessagingEntityDisabledError",
        "MessageAlreadySettled",
        "MessageNotFoundError",
        "ServiceBusQuotaExceededError",
        "ResourceNotFoundError",
    ],
}


def classify_error_type(error_type_name: str) -> str | None:
    """
    Classify error by exception type name.

    Args:
        error_type_name: Name of the exception class

    Returns:
        Error category: "transient", "auth", "permanent", or None
    """
    for category, error_types in SERVICEBUS_ERROR_MAPPINGS.items():
        if error_type_name in error_types:
            return category
    return None


def _category_for(error: Exception) -> str:
    category = classify_error_type(type(error).__name__)
    if category is not None:
        return category

    fallback = classify_exception(error)
    if fallback == ErrorCategory.AUTH:
        return "auth"
    if fallback == ErrorCategory.PERMANENT:
        return "permanent"
    return "transient"


class ServiceBusErrorClassifier:
    """
    Centralized error classification for Service Bus operations.

    Maps provider exceptions to ToolkitError subclasses:
    - settlement failures -> AcknowledgmentError
    - authentication failures -> AuthError
    - everything else on open/receive/peek -> ConnectivityError
    """

    def classify_error(self, error: Exception) -> ErrorCategory:
        """Classify an exception into an error category."""
        return {
            "transient": ErrorCategory.TRANSIENT,
            "auth": ErrorCategory.AUTH,
            "permanent": ErrorCategory.PERMANENT,
        }[_category_for(error)]

    @staticmethod
    def classify_operation_error(
        error: Exception,
        operation: str,
        context: dict | None = None,
    ) -> ToolkitError:
        """
        Classify an error raised by a Service Bus operation.

        Args:
            error: Original exception
            operation: Operation name ("open", "receive", "peek", "acknowledge")
            context: Additional context (queue name, message id)

        Returns:
            Classified ToolkitError subclass
        """
        if isinstance(error, ToolkitError):
            return error

        error_context = {"operation": operation, "error_type": type(error).__name__}
        if context:
            error_context.update(context)

        category = _category_for(error)
        error_context["provider_category"] = category
        label = f"Service Bus {operation}"
        detail = describe_exception(error)

        if operation == "acknowledge":
            return AcknowledgmentError(
                f"{label} rejected: {detail}",
                message_id=str(error_context.get("message_id", "")),
                cause=error,
                context=error_context,
            )

        if category == "auth":
            return AuthError(f"{label} authentication failed: {detail}", cause=error, context=error_context)

        return ConnectivityError(f"{label} failed: {detail}", cause=error, context=error_context)


def classify_servicebus_error(
    error: Exception,
    operation: str,
    context: dict | None = None,
) -> ToolkitError:
    """Shorthand for ServiceBusErrorClassifier.classify_operation_error."""
    return ServiceBusErrorClassifier.classify_operation_error(error, operation, context)


__all__ = [
    "SERVICEBUS_ERROR_MAPPINGS",
    "ServiceBusErrorClassifier",
    "classify_error_type",
    "classify_servicebus_error",
]
