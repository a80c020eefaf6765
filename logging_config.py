"""
Logging configuration for the Area Profile API
Provides structured logging for production monitoring
"""

import logging
import json
import sys
from datetime import datetime, timezone


# Extra fields copied from LogRecord onto the JSON payload when present
STRUCTURED_FIELDS = (
    "request_id",
    "postcode",
    "lat",
    "lon",
    "api_name",
    "source_name",
    "endpoint",
    "error_type",
    "status_code",
    "response_time",
    "duration",
    "operation",
)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Set up logging configuration for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to use JSON formatting for structured logs
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Quieten chatty third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger("areaprofile").setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"areaprofile.{name}")


def log_api_call(logger: logging.Logger, api_name: str, endpoint: str,
                 request_id: str = None, **kwargs):
    """
    Log an upstream API call with structured data.

    Args:
        logger: Logger instance
        api_name: Name of the upstream source
        endpoint: URL being requested
        request_id: Optional request ID for tracing
        **kwargs: Additional fields to log
    """
    extra = {
        "api_name": api_name,
        "endpoint": endpoint,
        **kwargs
    }
    if request_id:
        extra["request_id"] = request_id

    logger.debug(f"API call to {api_name}: {endpoint}", extra=extra)


def log_error(logger: logging.Logger, error_type: str, message: str,
              request_id: str = None, **kwargs):
    """
    Log an error with structured data.

    Args:
        logger: Logger instance
        error_type: Type of error (e.g., "timeout", "http_status", "schema")
        message: Error message
        request_id: Optional request ID for tracing
        **kwargs: Additional fields to log
    """
    extra = {
        "error_type": error_type,
        **kwargs
    }
    if request_id:
        extra["request_id"] = request_id

    logger.warning(message, extra=extra)


def log_performance(logger: logging.Logger, operation: str, duration: float,
                    request_id: str = None, **kwargs):
    """
    Log performance metrics.

    Args:
        logger: Logger instance
        operation: Name of the operation
        duration: Duration in seconds
        request_id: Optional request ID for tracing
        **kwargs: Additional fields to log
    """
    extra = {
        "operation": operation,
        "duration": duration,
        **kwargs
    }
    if request_id:
        extra["request_id"] = request_id

    logger.info(f"Performance: {operation} took {duration:.2f}s", extra=extra)


def log_source_outcome(logger: logging.Logger, source_name: str, available: bool,
                       duration_ms: int, request_id: str = None, error_type: str = None):
    """Log the outcome of one report slot for a profile request."""
    extra = {
        "source_name": source_name,
        "response_time": duration_ms,
    }
    if error_type:
        extra["error_type"] = error_type
    if request_id:
        extra["request_id"] = request_id

    state = "available" if available else f"absent ({error_type or 'unavailable'})"
    logger.debug(f"Source {source_name} {state} in {duration_ms}ms", extra=extra)
