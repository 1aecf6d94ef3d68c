"""Structured logging for search components.

Logs go through ``structlog`` on top of the standard library, rendered as
JSON lines by default or as colored console output for local work. The
service name, plus any per-search context bound with ``search_context``,
is merged into every event.

Typical usage
- ``configure_logging("search", config.search_log_level, config.search_log_format)``
  once at startup, or ``configure_from_config(config)``
- ``logger = structlog.get_logger("search_service.<module>")`` per module
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, List

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

from .config import BaseConfig

LOG_FORMATS = ("json", "console")


def _processors(log_format: str) -> List[Any]:
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_logger_name,
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    **context: Any
) -> None:
    """Configure structured logging for the process.

    Parameters
    - service_name: Bound as ``service`` on every event
    - log_level: ``DEBUG``, ``INFO``, ``WARNING`` or ``ERROR`` (any case)
    - log_format: ``json`` or ``console``
    - context: Extra key/values bound next to ``service``
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name, **context)


def configure_from_config(config: BaseConfig, service_name: str = "search") -> None:
    """Configure logging from ``search_log_level`` / ``search_log_format``."""
    configure_logging(
        service_name,
        config.search_log_level,
        config.search_log_format,
        environment=config.search_env,
    )


@contextmanager
def search_context(**context: Any) -> Iterator[None]:
    """Bind key/values to every event logged inside the block.

    Context is stored in contextvars, so concurrent searches on one event
    loop each see only their own values.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log a timing measurement under the ``performance`` logger."""
    structlog.get_logger("performance").info(
        "Operation timed",
        operation=operation,
        duration_ms=round(duration_ms, 3),
        **kwargs
    )
