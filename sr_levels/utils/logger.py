"""
Structured logging for the support/resistance level engine

structlog on top of the stdlib logging module. Events are rendered as JSON
lines for services or through the console renderer for interactive use.
"""

import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor


class LogFormat(str, Enum):
    """Log output formats"""
    JSON = "json"
    CONSOLE = "console"


_logging_configured = False


def configure_logging(
    level: str = "INFO",
    format_type: LogFormat = LogFormat.JSON,
    service_name: str = "sr-levels",
    force: bool = False
) -> None:
    """
    Configure structlog and the root stdlib handler once per process

    Args:
        level: stdlib level name
        format_type: JSON lines or console output
        service_name: Value of the `service` field on every event
        force: Reconfigure even if logging was already set up
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    processors = [
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.format_exc_info,
        _service_field(service_name),
    ]
    if LogFormat(format_type) is LogFormat.CONSOLE:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer(default=str))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=force
    )
    # uvicorn logs every request at info
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)

    _logging_configured = True


def _service_field(service_name: str) -> Processor:
    def processor(logger, method_name, event_dict):
        event_dict.setdefault('service', service_name)
        return event_dict

    return processor


def get_logger(name: str = "sr_levels") -> structlog.stdlib.BoundLogger:
    """Structured logger for `name`, configuring logging on first use"""
    if not _logging_configured:
        configure_logging()
    return structlog.get_logger(name)


def get_engine_logger(
    symbol: str,
    tier: Optional[str] = None,
    operation: Optional[str] = None
) -> structlog.stdlib.BoundLogger:
    """
    Logger bound to scan context

    Args:
        symbol: Instrument symbol
        tier: Tier value (D1, H4, H1)
        operation: fetch, scan, expire or consolidate

    Returns:
        Logger carrying the non-empty context fields
    """
    context = {'symbol': symbol, 'tier': tier, 'operation': operation}
    return get_logger("sr_levels.engine").bind(
        **{key: value for key, value in context.items() if value}
    )


def log_performance_metrics(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    duration_seconds: float,
    success: bool = True,
    additional_metrics: Optional[Dict[str, Any]] = None
):
    """Log an operation's duration together with its counters"""
    fields = dict(additional_metrics or {})
    fields.update(
        operation=operation,
        duration_seconds=round(duration_seconds, 4),
        success=success
    )

    log = logger.info if success else logger.error
    log(f"{operation} {'completed' if success else 'failed'}", **fields)


class LoggerMixin:
    """
    Gives a class a `logger` bound to its name and to any context set
    through set_log_context()
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._logger = None
        self._log_context: Dict[str, Any] = {}

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if self._logger is None:
            cls = type(self)
            self._logger = get_logger(f"{cls.__module__}.{cls.__name__}").bind(**self._log_context)
        return self._logger

    def set_log_context(self, **kwargs):
        self._log_context.update(kwargs)
        self._logger = None

    def log_operation_start(self, operation: str, **kwargs):
        self.logger.info(f"Starting {operation}", operation=operation, **kwargs)

    def log_operation_end(self, operation: str, success: bool = True, **kwargs):
        log = self.logger.info if success else self.logger.error
        log(f"{'Completed' if success else 'Failed'} {operation}", operation=operation, success=success, **kwargs)
