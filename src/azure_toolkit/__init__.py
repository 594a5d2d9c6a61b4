"""
Azure Toolkit: Azure Service Bus queue consumption as schedulable blocks.

Packages:
    servicebus - normalizer, queue session, poll cycle controller, health check
    blocks     - lifecycle state machine, subscription and queue reader blocks
    common     - value types, state store, sinks, scheduler, status server, metrics
"""

__version__ = "0.1.0"
