"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- ToolkitError hierarchy for typed exceptions
- Classification utilities for error handling
- Service Bus error classifier for provider exceptions
"""

from core.errors.exceptions import (
    AcknowledgmentError,
    AuthError,
    ConfigurationError,
    ConnectivityError,
    ErrorCategory,
    ToolkitError,
    classify_exception,
    describe_exception,
    is_auth_error,
    is_transient_error,
    wrap_exception,
)
from core.errors.servicebus_classifier import (
    SERVICEBUS_ERROR_MAPPINGS,
    ServiceBusErrorClassifier,
    classify_error_type,
    classify_servicebus_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "ToolkitError",
    "ConfigurationError",
    "AuthError",
    "ConnectivityError",
    "AcknowledgmentError",
    # Classification utilities
    "is_auth_error",
    "is_transient_error",
    "classify_exception",
    "describe_exception",
    "wrap_exception",
    # Service Bus classifier
    "SERVICEBUS_ERROR_MAPPINGS",
    "ServiceBusErrorClassifier",
    "classify_error_type",
    "classify_servicebus_error",
]
