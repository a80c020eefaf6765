"""
Error handling for the Area Profile API
Every upstream failure is folded into an absent section at the adapter boundary;
only an unresolvable postcode reaches the caller.
"""

import asyncio
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional

import aiohttp
from pydantic import ValidationError

from logging_config import get_logger, log_error

logger = get_logger(__name__)

# Classified reason for the most recent adapter failure in the current task
failure_reason: ContextVar[Optional[str]] = ContextVar("failure_reason", default=None)


class AreaProfileError(Exception):
    """Base exception for Area Profile errors."""
    pass


class APIError(AreaProfileError):
    """Exception for upstream API failures (transport or status)."""
    def __init__(self, message: str, api_name: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.api_name = api_name
        self.status_code = status_code


class UpstreamTimeoutError(APIError):
    """Upstream did not answer within the request timeout."""
    pass


class SchemaError(APIError):
    """Payload was not JSON, failed validation, or carried an upstream error field."""
    pass


class LocationNotFoundError(AreaProfileError):
    """The postcode could not be resolved to a location."""
    def __init__(self, postcode: str):
        super().__init__(f"Postcode not found: {postcode}")
        self.postcode = postcode


def classify_error(exc: BaseException) -> str:
    """Map an exception to the error_type used in logs and source summaries."""
    if isinstance(exc, (UpstreamTimeoutError, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, (SchemaError, ValidationError)):
        return "schema"
    if isinstance(exc, APIError):
        return "http_status" if exc.status_code is not None else "network"
    if isinstance(exc, aiohttp.ClientError):
        return "network"
    return "unexpected"


def parse_payload(model, payload: Any, api_name: str):
    """Validate a raw JSON payload against a pydantic model, raising SchemaError."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SchemaError(f"Unexpected {api_name} payload: {e.error_count()} validation errors", api_name) from e


def check_arcgis_error(payload: Any, api_name: str) -> Dict:
    """ArcGIS answers 200 with an "error" object for bad queries."""
    if not isinstance(payload, dict):
        raise SchemaError(f"{api_name} returned a non-object payload", api_name)
    if payload.get("error"):
        error = payload["error"]
        code = error.get("code") if isinstance(error, dict) else None
        raise SchemaError(f"{api_name} returned an error payload: {error}", api_name, code)
    return payload


def absent_on_failure(api_name: str):
    """
    Decorator for adapter coroutines: any failure becomes None (the absent outcome).

    Args:
        api_name: Name of the upstream source, used for logging
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                error_type = classify_error(e)
                log_error(
                    logger,
                    error_type,
                    f"{api_name} unavailable: {e}",
                    api_name=api_name,
                    status_code=getattr(e, "status_code", None),
                )
                failure_reason.set(error_type)
                return None
        wrapper.api_name = api_name
        return wrapper
    return decorator
