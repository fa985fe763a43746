"""Diagnostic channel: human-readable ``[LEVEL] message`` lines on stderr.

stdout belongs to the line protocol, so nothing may log there. Call
``configure_logging()`` once at process start; modules then use::

    import structlog
    logger = structlog.get_logger()

    logger.error("Failed to parse request: ...")
    # → [ERROR] Failed to parse request: ...
"""

import logging
import sys
from typing import Any, TextIO

import structlog

# critical is the bridge's "process is going down" level
_LEVEL_TAGS = {"critical": "FATAL"}


def render_line(_logger: Any, method_name: str, event_dict: dict) -> str:
    level = event_dict.pop("level", method_name)
    tag = _LEVEL_TAGS.get(level, level.upper())
    message = str(event_dict.pop("event", ""))
    exception = event_dict.pop("exception", None)
    if event_dict:
        message += " " + " ".join(f"{key}={value}" for key, value in event_dict.items())
    line = f"[{tag}] {message}"
    if exception:
        line += "\n" + exception
    return line


def configure_logging(level: str = "info", stream: TextIO | None = None) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)

    def logger_factory(*_args: Any) -> structlog.PrintLogger:
        # sys.stderr looked up per call: test runners swap it out between invocations
        return structlog.PrintLogger(stream or sys.stderr)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            render_line,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=logger_factory,
        # capture_logs() swaps processors, which cached loggers would miss
        cache_logger_on_first_use=False,
    )
