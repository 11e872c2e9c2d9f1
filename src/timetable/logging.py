"""structlog setup for the portal client.

Log output goes to stderr so a caller can print the timetable on stdout.
Output format and level come from PortalConfig (LOG_JSON, LOG_LEVEL) unless
given explicitly.
"""

import logging
import sys

import structlog

from src.timetable.config import PortalConfig, get_config


def setup_logging(
    json_output: bool | None = None,
    log_level: str | None = None,
    config: PortalConfig | None = None,
) -> None:
    """Configure structlog and route stdlib logging (urllib3, requests) to stderr.

    Args:
        json_output: JSON lines instead of console output; defaults to config.log_json.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; defaults to config.log_level.
        config: Settings to read the defaults from; defaults to get_config().
    """
    if json_output is None or log_level is None:
        config = config or get_config()
        json_output = config.log_json if json_output is None else json_output
        log_level = config.log_level if log_level is None else log_level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(numeric_level)


def bind_portal(config: PortalConfig):
    """Context manager attaching the portal host and flow id to every log line inside it."""
    return structlog.contextvars.bound_contextvars(
        portal=config.cookie_domain,
        flow_id=config.flow_id,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
