"""
Custom exceptions for the support/resistance level engine

Exception hierarchy for the scan cycle, provider payloads and configuration,
with structured details for logging and API error bodies.
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SRLevelsException(Exception):
    """
    Base exception for the level engine

    All engine-specific exceptions inherit from this class so callers can
    handle them uniformly.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize the base exception

        Args:
            message: Error message
            error_code: Machine-readable error code
            details: Additional error details
            original_exception: Wrapped exception, if any
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        if original_exception:
            self.details['original_error'] = str(original_exception)
            self.details['original_type'] = type(original_exception).__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a JSON-serializable dictionary

        Returns:
            Dictionary with error information
        """
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
            'original_exception': str(self.original_exception) if self.original_exception else None
        }

    def __str__(self) -> str:
        base_msg = f"[{self.error_code}] {self.message}"
        if self.details:
            base_msg += f" | Details: {self.details}"
        return base_msg


class DataUnavailableException(SRLevelsException):
    """
    Raised when a provider cannot supply enough bars for a tier

    Scoped to one (symbol, tier) pair: the engine logs it and skips that
    tier for the current cycle.
    """

    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        tier: Optional[str] = None,
        required_bars: Optional[int] = None,
        provided_bars: Optional[int] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if symbol is not None:
            details['symbol'] = symbol
        if tier is not None:
            details['tier'] = tier
        if required_bars is not None:
            details['required_bars'] = required_bars
        if provided_bars is not None:
            details['provided_bars'] = provided_bars

        super().__init__(
            message=message,
            error_code="DATA_UNAVAILABLE",
            details=details,
            original_exception=original_exception
        )


class InvalidDataException(SRLevelsException):
    """
    Raised for malformed bar payloads

    Missing price columns, non-numeric prices or unsupported payload types.
    """

    def __init__(
        self,
        message: str,
        validation_errors: Optional[Dict[str, Any]] = None,
        data_info: Optional[Dict[str, Any]] = None
    ):
        details = {}
        if validation_errors:
            details['validation_errors'] = validation_errors
        if data_info:
            details['data_info'] = data_info

        super().__init__(
            message=message,
            error_code="INVALID_DATA",
            details=details
        )


class ConfigurationException(SRLevelsException):
    """
    Raised for invalid engine configuration

    Non-positive lookback, tolerance or capacity. This is the only error
    that prevents the engine from being constructed.
    """

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        invalid_params: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if config_section:
            details['config_section'] = config_section
        if invalid_params:
            details['invalid_params'] = invalid_params

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
            original_exception=original_exception
        )


def create_error_response(exception: SRLevelsException) -> Dict[str, Any]:
    """
    Build a standardized error body for the HTTP API

    Args:
        exception: Engine exception

    Returns:
        Dictionary suitable for a JSON response
    """
    return {
        "success": False,
        "error": {
            "type": exception.__class__.__name__,
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "timestamp": exception.timestamp.isoformat()
        }
    }


def log_exception(logger, exception: Exception, context: Optional[Dict[str, Any]] = None):
    """
    Log an exception with context on a structlog logger

    Args:
        logger: structlog logger
        exception: Exception to log
        context: Additional context
    """
    context = context or {}

    if isinstance(exception, SRLevelsException):
        logger.warning(
            f"Engine exception: {exception.message}",
            error_code=exception.error_code,
            error_type=exception.__class__.__name__,
            details=exception.details,
            **context
        )
    else:
        logger.error(
            f"Unexpected exception: {exception}",
            error_type=type(exception).__name__,
            exc_info=exception,
            **context
        )
