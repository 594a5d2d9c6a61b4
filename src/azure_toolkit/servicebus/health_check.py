"""
Connection health check.

Validates that a queue is reachable with the configured credentials by
peeking at most one message. Peeking neither locks nor removes messages,
so the probe never changes queue state; an empty queue is a success.
"""

import logging

from core.auth.credentials import ServiceBusCredentials
from core.errors.exceptions import describe_exception
from core.logging.utilities import log_exception

from azure_toolkit.common import metrics
from azure_toolkit.common.types import ProbeResult, QueueConfig
from azure_toolkit.servicebus.session import ClientFactory, open_session

logger = logging.getLogger(__name__)


async def probe(
    config: QueueConfig,
    credentials: ServiceBusCredentials,
    client_factory: ClientFactory | None = None,
) -> ProbeResult:
    """
    Probe connectivity to the configured queue.

    Never raises for provider or configuration failures: the diagnostic is
    returned in ``ProbeResult.error``. Exception groups are flattened into
    ``"ExceptionGroup: first; second"``.
    """
    try:
        config.validate()
        credentials.validate()
        async with open_session(credentials, config.queue_name, client_factory) as session:
            await session.peek(1)
    except Exception as e:
        description = describe_exception(e)
        metrics.record_probe(config.queue_name, ok=False)
        log_exception(
            logger,
            e,
            "Connectivity probe failed",
            level=logging.WARNING,
            include_traceback=False,
            queue_name=config.queue_name,
        )
        return ProbeResult(ok=False, error=description)

    metrics.record_probe(config.queue_name, ok=True)
    logger.debug("Connectivity probe succeeded", extra={"queue_name": config.queue_name})
    return ProbeResult(ok=True)


__all__ = ["probe"]
