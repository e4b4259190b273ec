"""Structured logging for the kitbash guard.

A hook process talks to its host over stdout: exactly one JSON document,
nothing else. Any stray byte there corrupts the response, so diagnostics
always go to stderr (or, in tests, to an explicit buffer). Hook runs stay
quiet at WARNING unless the configuration or ``KITBASH_GUARD_LOG_LEVEL``
asks for more.
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def _resolve_level(level: str) -> int:
    """Map a level name from config or the environment; unknown names mean WARNING."""
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.WARNING


def _renderers(json_logs: bool) -> list[Any]:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.ConsoleRenderer(colors=False),
    ]


def configure_logging(
    level: str = "WARNING", json_logs: bool = False, stream: TextIO | None = None
) -> None:
    """Route structlog and stdlib logging to a diagnostic stream.

    Args:
        level: Level name such as DEBUG or ERROR
        json_logs: One JSON object per line instead of console text
        stream: Destination; stderr when omitted. Stdout is refused because it
            belongs to the hook response.

    Raises:
        ValueError: If ``stream`` is the process stdout
    """
    if stream is None:
        stream = sys.stderr
    elif stream is sys.stdout or stream is sys.__stdout__:
        raise ValueError("Logs must not be written to stdout; it carries the hook response")

    log_level = _resolve_level(level)

    logging.basicConfig(
        level=log_level,
        stream=stream,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            *_renderers(json_logs),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Handlers are replaced between runs in one process (tests, CLI re-entry).
        cache_logger_on_first_use=False,
    )


def configure_stderr_logging(level: str = "WARNING", json_logs: bool = False) -> None:
    """Send diagnostics to stderr, leaving stdout to the hook response."""
    configure_logging(level=level, json_logs=json_logs, stream=sys.stderr)
