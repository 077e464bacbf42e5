"""
Utility modules for the support/resistance level engine

Logging, exception hierarchy and helper functions shared across the package.
"""

from .logger import get_logger, get_engine_logger, configure_logging, LoggerMixin
from .exceptions import (
    SRLevelsException,
    DataUnavailableException,
    InvalidDataException,
    ConfigurationException,
    create_error_response,
    log_exception
)
from .helpers import (
    validate_symbol,
    normalize_symbol,
    validate_timeframe,
    parse_timeframe_to_minutes,
    parse_timeframe_to_timedelta,
    ensure_datetime,
    to_naive_utc,
    utc_now
)

__all__ = [
    # Logging
    "get_logger",
    "get_engine_logger",
    "configure_logging",
    "LoggerMixin",

    # Exceptions
    "SRLevelsException",
    "DataUnavailableException",
    "InvalidDataException",
    "ConfigurationException",
    "create_error_response",
    "log_exception",

    # Helpers
    "validate_symbol",
    "normalize_symbol",
    "validate_timeframe",
    "parse_timeframe_to_minutes",
    "parse_timeframe_to_timedelta",
    "ensure_datetime",
    "to_naive_utc",
    "utc_now"
]
