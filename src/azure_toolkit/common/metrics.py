"""
Prometheus metrics for queue consumption monitoring.

Focused on essential metrics:
- Messages received, acknowledged and emitted per queue
- Acknowledgment failures
- Poll cycles by outcome and cycle duration
- Connectivity probes by result
- Block health state
"""

import logging

from prometheus_client import REGISTRY, Counter, Gauge, Histogram

from azure_toolkit.common.types import HealthStatus

logger = logging.getLogger(__name__)


def _registered(name: str):
    # Re-importing the module (test reloads) must reuse existing collectors
    return REGISTRY._names_to_collectors.get(name)


def _create_counter(name: str, description: str, labelnames=None) -> Counter:
    try:
        return Counter(name, description, labelnames=labelnames or [])
    except ValueError:
        return _registered(f"{name}_total") or _registered(name)


def _create_gauge(name: str, description: str, labelnames=None) -> Gauge:
    try:
        return Gauge(name, description, labelnames=labelnames or [])
    except ValueError:
        return _registered(name)


def _create_histogram(name: str, description: str, labelnames=None, buckets=None) -> Histogram:
    kwargs = {"labelnames": labelnames or []}
    if buckets:
        kwargs["buckets"] = buckets
    try:
        return Histogram(name, description, **kwargs)
    except ValueError:
        return _registered(f"{name}_count") or _registered(name)


# =============================================================================
# Message flow
# =============================================================================

messages_received_counter = _create_counter(
    "servicebus_messages_received_total",
    "Total number of messages received from queues",
    labelnames=["queue"],
)

messages_acknowledged_counter = _create_counter(
    "servicebus_messages_acknowledged_total",
    "Total number of messages completed on queues",
    labelnames=["queue"],
)

messages_emitted_counter = _create_counter(
    "servicebus_messages_emitted_total",
    "Total number of normalized messages handed to sinks",
    labelnames=["queue", "success"],
)

acknowledgment_failures_counter = _create_counter(
    "servicebus_acknowledgment_failures_total",
    "Total acknowledgment failures that aborted a batch",
    labelnames=["queue"],
)

# =============================================================================
# Poll cycles and probes
# =============================================================================

poll_cycles_counter = _create_counter(
    "servicebus_poll_cycles_total",
    "Total poll cycles by outcome",
    labelnames=["queue", "outcome"],
)

poll_cycle_duration_seconds = _create_histogram(
    "servicebus_poll_cycle_duration_seconds",
    "Duration of poll cycles",
    labelnames=["queue"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

probes_counter = _create_counter(
    "servicebus_probes_total",
    "Total connectivity probes by result",
    labelnames=["queue", "result"],
)

block_health_gauge = _create_gauge(
    "azure_toolkit_block_health",
    "Block health state (1 for the current state, 0 otherwise)",
    labelnames=["block", "status"],
)


# =============================================================================
# Recording helpers
# =============================================================================


def record_messages_received(queue: str, count: int) -> None:
    if count > 0:
        messages_received_counter.labels(queue=queue).inc(count)


def record_message_acknowledged(queue: str) -> None:
    messages_acknowledged_counter.labels(queue=queue).inc()


def record_message_emitted(queue: str, success: bool = True) -> None:
    messages_emitted_counter.labels(queue=queue, success=str(success).lower()).inc()


def record_acknowledgment_failure(queue: str) -> None:
    acknowledgment_failures_counter.labels(queue=queue).inc()


def record_poll_cycle(queue: str, outcome: str, duration_seconds: float) -> None:
    poll_cycles_counter.labels(queue=queue, outcome=outcome).inc()
    poll_cycle_duration_seconds.labels(queue=queue).observe(duration_seconds)


def record_probe(queue: str, ok: bool) -> None:
    probes_counter.labels(queue=queue, result="ok" if ok else "failed").inc()


def update_block_health(block: str, status: HealthStatus) -> None:
    """Set the gauge for the current status to 1 and every other status to 0."""
    for candidate in HealthStatus:
        block_health_gauge.labels(block=block, status=candidate.value).set(
            1 if candidate == status else 0
        )


__all__ = [
    "record_acknowledgment_failure",
    "record_message_acknowledged",
    "record_message_emitted",
    "record_messages_received",
    "record_poll_cycle",
    "record_probe",
    "update_block_health",
]
