import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from area_profile import orchestrator
from area_profile.orchestrator import SOURCES, build_area_profile, profile_postcode
from data_sources.error_handling import APIError, LocationNotFoundError, SchemaError, UpstreamTimeoutError
from data_sources.models import CrimeCategoryCount, CrimeSummary, FloodWarnings
from data_sources.telemetry import get_telemetry_stats

ADAPTERS = (
    "get_crime", "get_flood_stations", "get_flood_warnings", "get_house_prices",
    "get_bathing_water", "get_species", "get_listed_buildings", "get_ancient_trees",
    "get_natural_england", "get_sewage_overflows", "get_climate_outlook",
)

CRIME = CrimeSummary(total=2, by_category=[CrimeCategoryCount(category="burglary", count=2)], month="2024-05")


def _absent_adapters():
    return {name: AsyncMock(return_value=None) for name in ADAPTERS}


def test_unknown_postcode_queries_no_source():
    adapters = _absent_adapters()
    with patch.object(orchestrator, "lookup_postcode", AsyncMock(return_value=None)), \
            patch.multiple(orchestrator, **adapters):
        with pytest.raises(LocationNotFoundError) as excinfo:
            asyncio.run(profile_postcode(" zz99  9zz "))

    assert excinfo.value.postcode == "ZZ99 9ZZ"
    for mock in adapters.values():
        mock.assert_not_called()
    stats = get_telemetry_stats()
    assert stats["total_requests"] == 1
    assert stats["not_found"] == 1


def test_every_source_absent_still_returns_location(westminster):
    adapters = _absent_adapters()
    with patch.object(orchestrator, "lookup_postcode", AsyncMock(return_value=westminster)), \
            patch.multiple(orchestrator, **adapters):
        profile = asyncio.run(profile_postcode("SW1A 1AA"))

    assert profile.location == westminster
    data = profile.to_json()
    for slot in SOURCES:
        assert data[slot] is None
        assert data["sources"][slot] == {"available": False, "error": "unavailable"}
    for mock in adapters.values():
        mock.assert_awaited_once()


def test_profile_passes_location_to_adapters(westminster):
    adapters = _absent_adapters()
    adapters["get_crime"] = AsyncMock(return_value=CRIME)
    with patch.object(orchestrator, "lookup_postcode", AsyncMock(return_value=westminster)), \
            patch.multiple(orchestrator, **adapters):
        profile = asyncio.run(profile_postcode("sw1a1aa"))

    assert profile.crime == CRIME
    adapters["get_crime"].assert_awaited_once_with(westminster.lat, westminster.lng)
    adapters["get_house_prices"].assert_awaited_once_with("SW1A 1AA")
    stats = get_telemetry_stats()
    assert stats["sources"]["crime"]["available"] == 1
    assert stats["sources"]["species"]["absent"] == 1


def test_failing_source_does_not_affect_others(westminster):
    async def crime(location):
        return CRIME

    async def flood_warnings(location):
        raise UpstreamTimeoutError("timed out", "ea_flood_warnings")

    async def species(location):
        raise RuntimeError("bug in adapter")

    profile = asyncio.run(build_area_profile(westminster, sources={
        "crime": crime,
        "floodWarnings": flood_warnings,
        "species": species,
    }, disabled=()))

    assert profile.crime == CRIME
    assert profile.flood_warnings is None
    assert profile.species is None
    assert profile.sources["crime"].available is True
    assert profile.sources["floodWarnings"].error == "timeout"
    assert profile.sources["species"].error == "unexpected"
    assert get_telemetry_stats()["errors"] == {"timeout": 1, "unexpected": 1}


def test_sources_run_concurrently(westminster):
    async def run():
        started = {"a": asyncio.Event(), "b": asyncio.Event()}

        def waits_for(mine, other, record):
            async def fetch(location):
                started[mine].set()
                # Times out unless the other source is already running
                await asyncio.wait_for(started[other].wait(), timeout=1.0)
                return record
            return fetch

        return await build_area_profile(westminster, sources={
            "floodWarnings": waits_for("a", "b", FloodWarnings(count=0, warnings=[])),
            "crime": waits_for("b", "a", CRIME),
        }, disabled=())

    profile = asyncio.run(run())
    assert profile.sources["floodWarnings"].available
    assert profile.sources["crime"].available


def test_disabled_sources_are_skipped(westminster):
    crime = AsyncMock(return_value=CRIME)
    species = AsyncMock(return_value=None)

    profile = asyncio.run(build_area_profile(
        westminster,
        sources={"crime": crime, "species": species},
        disabled={"crime"},
    ))

    crime.assert_not_called()
    species.assert_awaited_once_with(westminster)
    assert profile.crime is None
    assert profile.sources["crime"].error == "disabled"
    assert get_telemetry_stats()["sources"]["crime"]["disabled"] == 1


def test_profile_is_deterministic(westminster):
    adapters = _absent_adapters()
    adapters["get_crime"] = AsyncMock(return_value=CRIME)
    with patch.object(orchestrator, "lookup_postcode", AsyncMock(return_value=westminster)), \
            patch.multiple(orchestrator, **adapters):
        first = asyncio.run(profile_postcode("SW1A 1AA")).to_json()
        second = asyncio.run(profile_postcode("SW1A 1AA")).to_json()

    assert first == second


def test_report_uses_camel_case_keys(westminster):
    profile = asyncio.run(build_area_profile(westminster, sources={"crime": AsyncMock(return_value=CRIME)},
                                             disabled=()))
    data = profile.to_json()

    assert set(data) >= {"location", "crime", "floodStations", "floodWarnings", "housePrices",
                         "bathingWater", "species", "listedBuildings", "ancientTrees",
                         "naturalEngland", "sewageOverflows", "climateOutlook", "sources"}
    assert data["location"]["admin_district"] == "Westminster"
    assert data["crime"]["byCategory"] == [{"category": "burglary", "count": 2}]


@pytest.mark.parametrize("exc, error_type", [
    (UpstreamTimeoutError("timed out", "police_uk"), "timeout"),
    (APIError("HTTP 503", "police_uk", status_code=503), "http_status"),
    (SchemaError("bad payload", "police_uk"), "schema"),
])
def test_adapter_failure_reason_reaches_sources_and_telemetry(westminster, fetch_json, exc, error_type):
    fetch_json.side_effect = exc

    profile = asyncio.run(build_area_profile(westminster, sources={"crime": SOURCES["crime"]}, disabled=()))

    assert profile.crime is None
    assert profile.sources["crime"].error == error_type
    assert get_telemetry_stats()["errors"] == {error_type: 1}
    assert get_telemetry_stats()["sources"]["crime"]["absent"] == 1


def test_failure_reason_stays_in_its_own_slot(westminster, fetch_json):
    fetch_json.side_effect = UpstreamTimeoutError("timed out", "police_uk")

    async def empty(location):
        return None

    profile = asyncio.run(build_area_profile(westminster, sources={
        "crime": SOURCES["crime"],
        "floodWarnings": empty,
    }, disabled=()))

    assert profile.sources["crime"].error == "timeout"
    assert profile.sources["floodWarnings"].error == "unavailable"
    assert get_telemetry_stats()["errors"] == {"timeout": 1}
