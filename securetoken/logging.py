"""
Structured logging for securetoken.

The library only obtains loggers; hosts call ``configure_logging`` once at
startup (``from_settings`` does so with the configured level).
"""

import sys
import structlog
import logging
from typing import Any, Dict

LOGGER_PREFIX = "securetoken."


def configure_logging(log_level: str = "info", json_output: bool = True) -> None:
    """Route structlog through stdlib logging at ``log_level``.

    Events render as JSON lines with an ISO-8601 UTC ``timestamp``; pass
    ``json_output=False`` for the console renderer during local development.
    """
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_component_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger(LOGGER_PREFIX.rstrip(".")).setLevel(level)


def add_component_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events from ``securetoken.<component>`` loggers with the component."""
    logger_name = event_dict.get("logger", "")
    if logger_name.startswith(LOGGER_PREFIX):
        event_dict["component"] = logger_name[len(LOGGER_PREFIX):].split(".")[0]

    return event_dict


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
