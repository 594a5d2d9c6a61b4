"""Context managers for structured logging."""

from core.logging.context import get_log_context, set_log_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(block="orders", cycle_id=cycle_id):
            # All logs in this block will carry block and cycle_id
            await controller.run_cycle(config, credentials)
    """

    def __init__(
        self,
        cycle_id: str | None = None,
        block: str | None = None,
        queue_name: str | None = None,
    ):
        self.new_context = {
            "cycle_id": cycle_id,
            "block": block,
            "queue_name": queue_name,
        }
        self.old_context: dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(**self.old_context)
        return False
