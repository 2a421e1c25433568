"""Structured logging configuration using structlog.

Provides JSON-structured logging in production and human-readable colored
output in development. A bid's identifier is bound to the context for the
length of each service call (see bid_context), so one bid can be traced
through transitions, automation rules and payment matching without every
log call repeating it.

Usage:
    from tea_workflow.logging_config import bid_context, get_logger, setup_logging
    setup_logging(log_level="DEBUG", json_logs=False)
    logger = get_logger()
    with bid_context("BID-001", actor="processor-1"):
        logger.info("workflow.transition_committed", new_status="e-slip-sent")
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog

# Event name prefix -> pipeline component, used to route and filter logs.
_COMPONENTS: dict[str, str] = {
    "workflow": "engine",
    "matcher": "payments",
    "notification": "automation",
}


def add_workflow_component(
    _logger: Any, _method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Tag each entry with the component named by its dotted event prefix."""
    event = event_dict.get("event")
    if isinstance(event, str) and "." in event:
        prefix = event.split(".", 1)[0]
        event_dict.setdefault("component", _COMPONENTS.get(prefix, prefix))
    return event_dict


def bid_context(bid_id: str, **extra: Any) -> AbstractContextManager[Any]:
    """Bind ``bid_id`` (and any extra keys) to every log entry in the block."""
    return structlog.contextvars.bound_contextvars(bid_id=bid_id, **extra)


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Configure structlog with shared processors.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON (for production). If False, colored console.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_workflow_component,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    # The state machine library logs every callback dispatch at DEBUG
    logging.getLogger("statemachine").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.
    """
    return structlog.get_logger(name)
