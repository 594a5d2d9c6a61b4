"""
Authentication module.

Provides Service Bus credentials: connection strings, pre-issued bearer
tokens, and azure-identity's default credential chain.
"""

from .credentials import (
    SERVICEBUS_SCOPE,
    TOKEN_EXPIRY_MINS,
    ServiceBusCredentials,
    StaticTokenCredential,
    create_servicebus_client,
)

__all__ = [
    "SERVICEBUS_SCOPE",
    "TOKEN_EXPIRY_MINS",
    "ServiceBusCredentials",
    "StaticTokenCredential",
    "create_servicebus_client",
]
