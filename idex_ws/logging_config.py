"""
Structured logging setup.

All modules log through ``structlog.get_logger(__name__)`` with event names
such as ``websocket_connected`` and keyword context. Applications call
``setup_logging`` once at startup; libraries never configure logging.
"""

import logging
import sys

import structlog

from idex_ws.config.models import LogFormat, LoggingConfig, LogLevel


def setup_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
) -> None:
    """
    Configure structlog and standard logging.

    Args:
        level: Log level name.
        log_format: "json" for one JSON object per line, "text" for
            human readable console output.
    """
    level_name = LogLevel(level).value
    renderer = (
        structlog.processors.JSONRenderer()
        if LogFormat(log_format) == LogFormat.JSON
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so stdout stays free for streamed messages
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name),
    )

    # Reduce noise from the websockets protocol logger
    logging.getLogger("websockets").setLevel(logging.WARNING)


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Configure logging from a LoggingConfig."""
    setup_logging(config.level, config.format)
