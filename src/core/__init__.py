"""
Core library: infrastructure shared by the toolkit packages.

Modules:
    auth    - Service Bus credentials (connection string, bearer token, default chain)
    logging - Structured JSON logging with cycle correlation IDs
    errors  - Error classification and exception hierarchy
    utils   - JSON serialization helpers
"""

from .types import ErrorCategory, ErrorClassifier

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "ErrorClassifier",
]
