"""
structlog setup and the narrow logger sink consumed by the retry loop.
"""

import logging
import sys
from typing import Protocol

import structlog


def configure_logging(level: str = "INFO", fmt: str = "%(message)s"):
    """Route structlog through stdlib logging and render JSON lines to stdout."""
    logging.basicConfig(
        format=fmt,
        stream=sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
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
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(config):
    """Apply the ``logging`` section (``level``, ``format``) of a Config."""
    settings = config.logging
    configure_logging(
        level=settings.get('level', 'INFO'),
        fmt=settings.get('format', '%(message)s'),
    )


class LogSink(Protocol):
    """Where request diagnostics go. Implementations must not raise."""

    def log_exception(self, err: BaseException) -> None:
        ...

    def log_error(self, message: str) -> None:
        ...


class StructlogSink:
    """Default sink: a structlog logger bound to the owning requester's label."""

    def __init__(self, identifier: str, logger=None):
        self.identifier = identifier
        self._logger = (logger or structlog.get_logger("gatedhttp.requester")).bind(requester=identifier)

    def log_exception(self, err: BaseException) -> None:
        self._logger.error(
            "request_attempt_failed",
            error_type=type(err).__name__,
            error=str(err),
            url=getattr(err, "url", None),
            exc_info=err,
        )

    def log_error(self, message: str) -> None:
        self._logger.error(message)
