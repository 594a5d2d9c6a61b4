"""Tests for log context variables and the LogContext manager."""

import asyncio

import pytest

from core.logging.context import clear_log_context, get_log_context, set_log_context
from core.logging.context_managers import LogContext


class TestLogContextVars:
    def test_defaults_are_empty(self):
        assert get_log_context() == {"cycle_id": "", "block": "", "queue_name": ""}

    def test_set_only_updates_given_fields(self):
        set_log_context(block="orders")
        set_log_context(cycle_id="c-1")

        ctx = get_log_context()
        assert ctx["block"] == "orders"
        assert ctx["cycle_id"] == "c-1"

    def test_clear(self):
        set_log_context(block="orders", queue_name="q")
        clear_log_context()
        assert get_log_context()["block"] == ""

    @pytest.mark.asyncio
    async def test_tasks_do_not_leak_context(self):
        async def worker(name):
            set_log_context(block=name)
            await asyncio.sleep(0)
            return get_log_context()["block"]

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]
        assert get_log_context()["block"] == ""


class TestLogContext:
    """Tests for LogContext manager."""

    def test_sets_context_on_enter(self):
        with LogContext(cycle_id="c-123", queue_name="orders"):
            ctx = get_log_context()
            assert ctx["cycle_id"] == "c-123"
            assert ctx["queue_name"] == "orders"

    def test_restores_context_on_exit(self):
        set_log_context(cycle_id="initial", block="initial-block")

        with LogContext(cycle_id="c-123", block="orders"):
            pass

        ctx = get_log_context()
        assert ctx["cycle_id"] == "initial"
        assert ctx["block"] == "initial-block"

    def test_handles_none_values(self):
        """None values don't override context."""
        set_log_context(block="existing")

        with LogContext(cycle_id="c-1"):
            assert get_log_context()["block"] == "existing"

    def test_restores_on_exception(self):
        with pytest.raises(RuntimeError), LogContext(block="orders"):
            raise RuntimeError("fail")

        assert get_log_context()["block"] == ""
