"""Logging utility functions."""

import logging
from typing import Any

# Reserved LogRecord attribute names that cannot be used in extra dict
_RESERVED_LOG_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "asctime",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)

_MAX_ERROR_MESSAGE_LENGTH = 500


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (message_id, count, outcome, etc.)
                  exc_info=True is passed through to the logger.

    Example:
        log_with_context(
            logger, logging.INFO, "Poll cycle complete",
            outcome="ok",
            count=3,
            duration_ms=elapsed,
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}

    logger.log(level, msg, exc_info=exc_info, extra=extra)


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Extracts error_category from ToolkitError subclasses and truncates
    long provider messages.

    Example:
        try:
            await session.acknowledge(raw)
        except AcknowledgmentError as e:
            log_exception(logger, e, "Acknowledgment failed", message_id=e.message_id)
    """
    if kwargs.get("error_category") is None and hasattr(exc, "category"):
        cat = exc.category
        kwargs["error_category"] = cat.value if hasattr(cat, "value") else str(cat)

    error_msg = str(exc) or type(exc).__name__
    if len(error_msg) > _MAX_ERROR_MESSAGE_LENGTH:
        error_msg = error_msg[:_MAX_ERROR_MESSAGE_LENGTH] + "..."
    kwargs["error_message"] = error_msg

    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=extra)
    else:
        logger.log(level, msg, extra=extra)


def log_startup_banner(
    logger: logging.Logger,
    title: str,
    **fields: Any,
) -> None:
    """
    Log a startup banner listing the non-empty fields.

    Example:
        log_startup_banner(logger, "Azure Toolkit", blocks="orders", status_port=8080)
    """
    separator = "=" * 50
    lines = ["", separator, title, separator]
    for key, value in fields.items():
        if value not in (None, ""):
            lines.append(f"{key.replace('_', ' ').capitalize()}: {value}")
    lines.append(separator)

    logger.info("\n".join(lines))
