"""Context variables for structured logging."""

from contextvars import ContextVar

_cycle_id: ContextVar[str] = ContextVar("cycle_id", default="")
_block: ContextVar[str] = ContextVar("block", default="")
_queue_name: ContextVar[str] = ContextVar("queue_name", default="")


def set_log_context(
    cycle_id: str | None = None,
    block: str | None = None,
    queue_name: str | None = None,
) -> None:
    if cycle_id is not None:
        _cycle_id.set(cycle_id)
    if block is not None:
        _block.set(block)
    if queue_name is not None:
        _queue_name.set(queue_name)


def get_log_context() -> dict[str, str]:
    return {
        "cycle_id": _cycle_id.get(),
        "block": _block.get(),
        "queue_name": _queue_name.get(),
    }


def clear_log_context() -> None:
    _cycle_id.set("")
    _block.set("")
    _queue_name.set("")
