"""
Azure Service Bus credentials.

A block authenticates with one of three sources, checked in order:

    - Connection string: passed straight to ``ServiceBusClient.from_connection_string``
    - Pre-issued bearer token: wrapped in a StaticTokenCredential that reports
      the configured expiry (default one hour from issuance)
    - Namespace only: azure-identity's DefaultAzureCredential chain
      (managed identity, environment variables, Azure CLI, etc.)

Credentials are never refreshed here. An expired token surfaces as an
authentication failure of the next probe or poll cycle.

Example:
    >>> creds = ServiceBusCredentials(namespace="contoso", access_token="eyJ0eXAi...")
    >>> client = create_servicebus_client(creds)
    >>> async with client:
    ...     receiver = client.get_queue_receiver(queue_name="orders")
"""

import logging
import os
import time
from dataclasses import dataclass, field

from azure.core.credentials import AccessToken
from azure.identity.aio import DefaultAzureCredential
from azure.servicebus.aio import ServiceBusClient

from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SERVICEBUS_SCOPE = "https://servicebus.azure.net/.default"
SERVICEBUS_DOMAIN_SUFFIX = ".servicebus.windows.net"
TOKEN_EXPIRY_MINS = 60  # Assumed lifetime of a token without explicit expiry


class StaticTokenCredential:
    """
    Async token credential returning a fixed, pre-issued bearer token.

    Args:
        token: Bearer token issued by the host
        expires_on_ms: Expiry as Unix epoch milliseconds. Defaults to one hour
            after construction.
    """

    def __init__(self, token: str, expires_on_ms: int | None = None):
        if not token:
            raise ConfigurationError("Access token must not be empty")
        if expires_on_ms is None:
            expires_on_ms = int(time.time() * 1000) + TOKEN_EXPIRY_MINS * 60 * 1000
        self._token = token
        self.expires_on_ms = expires_on_ms

    async def get_token(self, *scopes: str, **kwargs) -> AccessToken:
        # AccessToken.expires_on is in seconds
        return AccessToken(self._token, self.expires_on_ms // 1000)

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "StaticTokenCredential":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


@dataclass
class ServiceBusCredentials:
    """
    Connection settings for a Service Bus namespace.

    Attributes:
        namespace: Namespace name ("contoso") or fully qualified host
        connection_string: Shared access connection string, wins when present
        access_token: Pre-issued bearer token
        access_token_expiry: Token expiry as Unix epoch milliseconds
    """

    namespace: str = ""
    connection_string: str = ""
    access_token: str = ""
    access_token_expiry: int | None = None
    _credential: StaticTokenCredential | DefaultAzureCredential | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def from_env(cls) -> "ServiceBusCredentials":
        expiry = os.getenv("SERVICEBUS_ACCESS_TOKEN_EXPIRY")
        return cls(
            namespace=os.getenv("SERVICEBUS_NAMESPACE", ""),
            connection_string=os.getenv("SERVICEBUS_CONNECTION_STRING", ""),
            access_token=os.getenv("SERVICEBUS_ACCESS_TOKEN", ""),
            access_token_expiry=int(expiry) if expiry else None,
        )

    @property
    def auth_mode(self) -> str:
        """
        Active authentication mode for diagnostics.

        Returns:
            "connection_string", "token", "default", or "none"
        """
        if self.connection_string:
            return "connection_string"
        if self.namespace and self.access_token:
            return "token"
        if self.namespace:
            return "default"
        return "none"

    @property
    def fully_qualified_namespace(self) -> str:
        host = self.namespace.strip()
        if host.startswith("sb://"):
            host = host[len("sb://"):]
        host = host.rstrip("/")
        if host and "." not in host:
            host = f"{host}{SERVICEBUS_DOMAIN_SUFFIX}"
        return host

    def validate(self) -> None:
        if self.auth_mode == "none":
            raise ConfigurationError(
                "No Service Bus credential configured. "
                "Provide a connection string, or a namespace with an optional access token"
            )
        if self.access_token_expiry is not None and self.access_token_expiry <= 0:
            raise ConfigurationError(
                f"access_token_expiry must be a positive epoch milliseconds value, got {self.access_token_expiry}"
            )

    def get_async_credential(self) -> StaticTokenCredential | DefaultAzureCredential:
        """Get or create the token credential for namespace-based authentication."""
        if self._credential is not None:
            return self._credential

        if self.access_token:
            self._credential = StaticTokenCredential(self.access_token, self.access_token_expiry)
        else:
            logger.info("Using DefaultAzureCredential (managed identity, env vars, etc.)")
            self._credential = DefaultAzureCredential()
        return self._credential

    async def close(self) -> None:
        """Close the cached token credential, if one was created."""
        if self._credential is not None:
            credential, self._credential = self._credential, None
            await credential.close()


def create_servicebus_client(credentials: ServiceBusCredentials) -> ServiceBusClient:
    """
    Build an async ServiceBusClient for the given credentials.

    Raises:
        ConfigurationError: If no usable credential is configured
    """
    credentials.validate()

    if credentials.connection_string:
        return ServiceBusClient.from_connection_string(credentials.connection_string)

    logger.debug(
        "Creating Service Bus client",
        extra={"namespace": credentials.fully_qualified_namespace, "auth_mode": credentials.auth_mode},
    )
    return ServiceBusClient(
        fully_qualified_namespace=credentials.fully_qualified_namespace,
        credential=credentials.get_async_credential(),
    )


__all__ = [
    "SERVICEBUS_SCOPE",
    "TOKEN_EXPIRY_MINS",
    "ServiceBusCredentials",
    "StaticTokenCredential",
    "create_servicebus_client",
]
