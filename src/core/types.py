"""
Core types shared across modules.

This module provides base enums and protocol definitions that are shared
across the core library to ensure consistency between the error hierarchy,
the Service Bus error classifier and the logging utilities.
"""

from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on the next poll cycle
                   (e.g., network timeouts, server busy, lock lost)
        AUTH: Authentication failures requiring a new credential
              (e.g., expired bearer token, unauthorized namespace)
        PERMANENT: Failures that will not fix themselves on retry
                   (e.g., missing queue name, unknown entity)
        UNKNOWN: Unclassified errors, may retry conservatively
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class ErrorClassifier(Protocol):
    """
    Protocol for error classification implementations.

    The Service Bus classifier implements this protocol to map SDK errors
    onto the standard categories.
    """

    def classify_error(self, error: Exception) -> ErrorCategory:
        """
        Classify an exception into an error category.

        Args:
            error: Exception to classify

        Returns:
            ErrorCategory indicating how to handle this error
        """
        ...


__all__ = [
    "ErrorCategory",
    "ErrorClassifier",
]
