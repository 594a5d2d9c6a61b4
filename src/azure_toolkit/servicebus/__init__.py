"""
Azure Service Bus queue consumption.

Components (leaf first):
    normalizer   - provider message -> NormalizedMessage
    session      - scoped receive / complete / peek on one queue
    poller       - at-least-once poll cycle (normalize, acknowledge, emit)
    health_check - non-destructive connectivity probe
"""

from azure_toolkit.servicebus.health_check import probe
from azure_toolkit.servicebus.normalizer import normalize
from azure_toolkit.servicebus.poller import PollCycleController
from azure_toolkit.servicebus.session import QueueSession, open_session

__all__ = [
    "PollCycleController",
    "QueueSession",
    "normalize",
    "open_session",
    "probe",
]
