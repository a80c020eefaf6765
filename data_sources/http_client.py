"""
Shared async HTTP client for upstream open-data services
One pooled aiohttp session; each request carries its own timeout.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from data_sources.cache import cached, CACHE_TTL
from data_sources.error_handling import APIError, SchemaError, UpstreamTimeoutError
from data_sources.settings import get_settings
from logging_config import get_logger, log_api_call

logger = get_logger(__name__)

# Global session for connection reuse
_session = None


async def get_session() -> aiohttp.ClientSession:
    """Get or create aiohttp session for connection reuse."""
    global _session
    if _session is None or _session.closed:
        connector = aiohttp.TCPConnector(limit=100, limit_per_host=10)
        _session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": get_settings().user_agent}
        )
    return _session


async def close_session():
    """Close the global session."""
    global _session
    if _session and not _session.closed:
        await _session.close()
    _session = None


@cached(ttl_seconds=CACHE_TTL['upstream'])
async def fetch_json(
    url: str,
    *,
    api_name: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    Fetch a JSON document from an upstream service.

    Args:
        url: Endpoint URL
        api_name: Source name for logging and errors
        method: "GET" (query string) or "POST" (form-encoded body)
        params: Query-string parameters
        data: Form fields for POST requests
        headers: Extra request headers
        timeout: Total timeout in seconds (defaults to the configured request timeout)

    Returns:
        Decoded JSON payload

    Raises:
        UpstreamTimeoutError: request did not complete within the timeout
        APIError: network failure or non-2xx status
        SchemaError: body is not valid JSON
    """
    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)
    total = timeout if timeout is not None else get_settings().request_timeout

    log_api_call(logger, api_name, url)
    session = await get_session()
    try:
        async with session.request(
            method,
            url,
            params=params,
            data=data,
            headers=request_headers,
            timeout=aiohttp.ClientTimeout(total=total),
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise APIError(f"{api_name} returned status {resp.status}", api_name, resp.status)
            try:
                return await resp.json(content_type=None)
            except ValueError as e:
                raise SchemaError(f"{api_name} returned invalid JSON", api_name, resp.status) from e
    except asyncio.TimeoutError as e:
        raise UpstreamTimeoutError(f"{api_name} timed out after {total}s", api_name) from e
    except aiohttp.ClientError as e:
        raise APIError(f"{api_name} request failed: {e}", api_name) from e
