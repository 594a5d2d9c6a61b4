"""
Tests for the block lifecycle state machine.

Test Coverage:
    - Activation probe verdicts
    - ready <-> failed transitions driven by probes
    - Scheduled trigger behavior per state
    - Drain terminality and consumer state cleanup
    - Configuration failures not re-probed
"""

import asyncio

import pytest
from azure.servicebus.exceptions import ServiceBusConnectionError

from azure_toolkit.blocks.lifecycle import LifecycleStateMachine
from azure_toolkit.common.sinks import CollectingSink
from azure_toolkit.common.state_store import InMemoryStateStore
from azure_toolkit.common.types import (
    LAST_CHECK_TIME_KEY,
    LAST_MESSAGE_RECEIVED_TIME_KEY,
    CycleOutcome,
    HealthStatus,
    ProbeResult,
    QueueConfig,
)
from azure_toolkit.servicebus.poller import PollCycleController
from core.auth.credentials import ServiceBusCredentials


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def make_machine(credentials, client_factory, state_store, sink):
    def _make(config=None, creds=None):
        config = config or QueueConfig("orders")
        controller = PollCycleController(state_store, sink, client_factory=client_factory)
        return LifecycleStateMachine(
            name="orders-block",
            config=config,
            credentials=creds or credentials,
            controller=controller,
            state_store=state_store,
            client_factory=client_factory,
        )

    return _make


class TestActivation:
    @pytest.mark.asyncio
    async def test_successful_probe_sets_ready(self, make_machine):
        machine = make_machine()
        assert machine.status is None

        assert await machine.activate() == HealthStatus.READY
        assert machine.description is None

    @pytest.mark.asyncio
    async def test_failed_probe_sets_failed_with_diagnostic(self, make_machine, receiver):
        receiver.peek_error = ServiceBusConnectionError(message="link detached")
        machine = make_machine()

        assert await machine.activate() == HealthStatus.FAILED
        assert "link detached" in machine.description
        assert machine.configuration_error is False

    @pytest.mark.asyncio
    async def test_invalid_settings_fail_without_io(self, make_machine, client_factory):
        machine = make_machine(config=QueueConfig("orders", max_messages=0))

        assert await machine.activate() == HealthStatus.FAILED
        assert "max_messages" in machine.description
        assert machine.configuration_error is True
        assert client_factory.clients == []

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_as_configuration(self, make_machine, client_factory):
        machine = make_machine(creds=ServiceBusCredentials())

        assert await machine.activate() == HealthStatus.FAILED
        assert machine.configuration_error is True
        assert client_factory.clients == []

    @pytest.mark.asyncio
    async def test_activation_records_clamp_warning(self, make_machine):
        machine = make_machine(config=QueueConfig("orders", max_messages=5000))

        assert await machine.activate() == HealthStatus.READY
        assert machine.controller.last_warnings == [
            "Max messages per poll (5000) exceeds the limit and will be truncated to 2047"
        ]

    @pytest.mark.asyncio
    async def test_listeners_notified(self, make_machine):
        machine = make_machine()
        seen = []
        machine.add_listener(lambda status, description: seen.append((status, description)))

        await machine.activate()

        assert seen == [(HealthStatus.READY, None)]


class TestProbeTransitions:
    def test_ready_to_failed_to_ready(self, make_machine):
        machine = make_machine()

        machine.apply_probe_result(ProbeResult(ok=True))
        assert machine.status == HealthStatus.READY

        machine.apply_probe_result(ProbeResult(ok=False, error="Unauthorized"))
        assert machine.status == HealthStatus.FAILED
        assert machine.description == "Unauthorized"

        machine.apply_probe_result(ProbeResult(ok=True))
        assert machine.status == HealthStatus.READY
        assert machine.description is None

    def test_failure_without_diagnostic_gets_default(self, make_machine):
        machine = make_machine()
        machine.apply_probe_result(ProbeResult(ok=False))
        assert machine.description == "Connection failed"


class TestOnSchedule:
    @pytest.mark.asyncio
    async def test_inactive_block_skips(self, make_machine, client_factory):
        machine = make_machine()

        assert await machine.on_schedule() is None
        assert client_factory.clients == []

    @pytest.mark.asyncio
    async def test_ready_block_polls(self, make_machine, receiver, sink, message_factory):
        machine = make_machine()
        await machine.activate()
        receiver.queue = [message_factory(1), message_factory(2)]

        result = await machine.on_schedule()

        assert result.outcome == CycleOutcome.OK
        assert result.count == 2
        assert len(sink.events) == 2
        assert machine.status == HealthStatus.READY

    @pytest.mark.asyncio
    async def test_cycle_error_reprobes_to_failed(self, make_machine, receiver):
        machine = make_machine()
        await machine.activate()
        receiver.receive_error = ServiceBusConnectionError(message="connection lost")
        receiver.peek_error = ServiceBusConnectionError(message="connection lost")

        result = await machine.on_schedule()

        assert result.outcome == CycleOutcome.ERROR
        assert machine.status == HealthStatus.FAILED
        assert "connection lost" in machine.description

    @pytest.mark.asyncio
    async def test_cycle_error_with_healthy_probe_stays_ready(self, make_machine, receiver):
        machine = make_machine()
        await machine.activate()
        receiver.receive_error = ServiceBusConnectionError(message="transient blip")

        result = await machine.on_schedule()

        assert result.outcome == CycleOutcome.ERROR
        assert machine.status == HealthStatus.READY
        assert receiver.peek_calls == [1, 1]

    @pytest.mark.asyncio
    async def test_failed_block_reprobes_without_polling(self, make_machine, receiver, message_factory):
        receiver.peek_error = ServiceBusConnectionError(message="down")
        machine = make_machine()
        await machine.activate()
        receiver.queue = [message_factory(1)]

        receiver.peek_error = None
        result = await machine.on_schedule()

        assert result is None
        assert machine.status == HealthStatus.READY
        assert receiver.receive_calls == []
        assert len(receiver.queue) == 1

        # The next trigger polls
        result = await machine.on_schedule()
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_configuration_failure_not_reprobed(self, make_machine, client_factory):
        machine = make_machine(config=QueueConfig(""))
        await machine.activate()

        assert await machine.on_schedule() is None
        assert await machine.on_schedule() is None

        assert machine.status == HealthStatus.FAILED
        assert client_factory.clients == []

    @pytest.mark.asyncio
    async def test_reactivation_revalidates(self, make_machine):
        machine = make_machine(creds=ServiceBusCredentials())
        await machine.activate()
        assert machine.configuration_error is True

        machine.credentials = ServiceBusCredentials(namespace="contoso", access_token="tok")
        assert await machine.activate() == HealthStatus.READY
        assert machine.configuration_error is False


class TestDrain:
    @pytest.mark.asyncio
    async def test_drain_clears_consumer_state(self, make_machine, state_store, message_factory, receiver):
        machine = make_machine()
        await machine.activate()
        receiver.queue = [message_factory(1)]
        await machine.on_schedule()
        assert LAST_MESSAGE_RECEIVED_TIME_KEY in state_store.snapshot()

        assert await machine.drain() == HealthStatus.DRAINED
        assert state_store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_drain_from_failed(self, make_machine, receiver):
        receiver.peek_error = ServiceBusConnectionError(message="down")
        machine = make_machine()
        await machine.activate()

        assert await machine.drain() == HealthStatus.DRAINED

    @pytest.mark.asyncio
    async def test_drained_is_terminal(self, make_machine, client_factory):
        machine = make_machine()
        await machine.activate()
        await machine.drain()
        clients_before = len(client_factory.clients)

        assert machine.apply_probe_result(ProbeResult(ok=True)) == HealthStatus.DRAINED
        assert machine.apply_probe_result(ProbeResult(ok=False, error="x")) == HealthStatus.DRAINED
        assert await machine.on_schedule() is None
        assert await machine.activate() == HealthStatus.DRAINED
        assert machine.status == HealthStatus.DRAINED
        assert len(client_factory.clients) == clients_before

    @pytest.mark.asyncio
    async def test_drain_during_cycle_ignores_later_probe(self, make_machine, receiver, state_store):
        machine = make_machine()
        await machine.activate()

        gate = asyncio.Event()
        original_receive = receiver.receive_messages

        async def slow_receive(**kwargs):
            await gate.wait()
            return await original_receive(**kwargs)

        receiver.receive_messages = slow_receive
        receiver.receive_error = ServiceBusConnectionError(message="down")

        cycle = asyncio.create_task(machine.on_schedule())
        await asyncio.sleep(0)
        drain = asyncio.create_task(machine.drain())
        await asyncio.sleep(0)
        assert machine.status == HealthStatus.DRAINED

        gate.set()
        await cycle
        await drain

        assert machine.status == HealthStatus.DRAINED
        assert LAST_CHECK_TIME_KEY not in state_store.snapshot()
        # The error-triggered re-probe is skipped once drained
        assert receiver.peek_calls == [1]
