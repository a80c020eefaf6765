import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from data_sources import http_client
from data_sources.cache import clear_cache
from data_sources.models import Location
from data_sources.telemetry import reset_telemetry


@pytest.fixture(autouse=True)
def fresh_state():
    """Each test starts with an empty response cache and zeroed telemetry."""
    asyncio.run(clear_cache())
    reset_telemetry()
    yield


@pytest.fixture
def fetch_json():
    """Stub out every upstream request made through the shared HTTP client."""
    with patch.object(http_client, "fetch_json", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def westminster():
    return Location(
        postcode="SW1A 1AA",
        lat=51.501009,
        lng=-0.141588,
        admin_district="Westminster",
        region="London",
        country="England",
        admin_ward="St James's",
    )
