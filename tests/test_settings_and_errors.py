import asyncio

import aiohttp
import pytest

from data_sources.error_handling import (
    APIError,
    SchemaError,
    UpstreamTimeoutError,
    absent_on_failure,
    check_arcgis_error,
    classify_error,
    failure_reason,
)
from data_sources.settings import DEFAULT_SEWAGE_OVERFLOW_SERVICE_URL, Settings, load_settings


def test_settings_defaults(monkeypatch):
    for name in ("AREA_PROFILE_REQUEST_TIMEOUT", "AREA_PROFILE_CACHE_TTL", "AREA_PROFILE_DISABLED_SOURCES",
                 "SEWAGE_OVERFLOW_SERVICE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.request_timeout == 5.0
    assert settings.cache_ttl == 86400
    assert settings.disabled_sources == frozenset()
    assert settings.sewage_overflow_service_url == DEFAULT_SEWAGE_OVERFLOW_SERVICE_URL
    assert settings.redis_url == ""


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("AREA_PROFILE_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("AREA_PROFILE_CACHE_TTL", "0")
    monkeypatch.setenv("AREA_PROFILE_DISABLED_SOURCES", "climateOutlook, species ,")
    monkeypatch.setenv("LOG_JSON", "false")

    settings = load_settings()

    assert settings.request_timeout == 2.5
    assert settings.cache_ttl == 0
    assert settings.disabled_sources == frozenset({"climateOutlook", "species"})
    assert settings.log_json is False


def test_settings_validation(monkeypatch):
    with pytest.raises(ValueError):
        Settings(request_timeout=0)
    with pytest.raises(ValueError):
        Settings(cache_ttl=-1)
    monkeypatch.setenv("AREA_PROFILE_REQUEST_TIMEOUT", "soon")
    with pytest.raises(ValueError):
        load_settings()


def test_classify_error():
    assert classify_error(UpstreamTimeoutError("t", "x")) == "timeout"
    assert classify_error(asyncio.TimeoutError()) == "timeout"
    assert classify_error(SchemaError("s", "x")) == "schema"
    assert classify_error(APIError("h", "x", 503)) == "http_status"
    assert classify_error(APIError("n", "x")) == "network"
    assert classify_error(aiohttp.ClientConnectionError()) == "network"
    assert classify_error(KeyError("k")) == "unexpected"


def test_absent_on_failure():
    @absent_on_failure("demo")
    async def works(value):
        return value * 2

    @absent_on_failure("demo")
    async def breaks():
        raise APIError("demo returned status 500", "demo", 500)

    assert asyncio.run(works(21)) == 42
    assert asyncio.run(breaks()) is None
    assert breaks.api_name == "demo"


def test_absent_on_failure_records_reason():
    @absent_on_failure("demo")
    async def times_out():
        raise UpstreamTimeoutError("demo timed out", "demo")

    async def run():
        before = failure_reason.get()
        result = await times_out()
        return before, result, failure_reason.get()

    assert asyncio.run(run()) == (None, None, "timeout")


def test_check_arcgis_error():
    assert check_arcgis_error({"features": []}, "layer") == {"features": []}
    with pytest.raises(SchemaError):
        check_arcgis_error({"error": {"code": 498, "message": "Invalid token"}}, "layer")
    with pytest.raises(SchemaError):
        check_arcgis_error([], "layer")
