"""
Fan-out orchestrator
Resolves a postcode once, then runs every source adapter concurrently and waits
for all of them before composing the report. A failed source only empties its
own slot; an unresolvable postcode is the only failure callers see.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Iterable, Optional

from area_profile.report import AreaProfile, SourceOutcome, compose_report
from data_sources.ancient_trees import get_ancient_trees
from data_sources.bathing_water import get_bathing_water
from data_sources.climate_outlook import get_climate_outlook
from data_sources.error_handling import LocationNotFoundError, classify_error, failure_reason
from data_sources.flood_monitoring import get_flood_stations, get_flood_warnings
from data_sources.historic_england import get_listed_buildings
from data_sources.land_registry import get_house_prices
from data_sources.models import Location
from data_sources.natural_england import get_natural_england
from data_sources.nbn_atlas import get_species
from data_sources.police_api import get_crime
from data_sources.postcodes_api import lookup_postcode, normalize_postcode
from data_sources.settings import get_settings
from data_sources.storm_overflows import get_sewage_overflows
from data_sources.telemetry import record_error, record_request_metrics, record_source_outcome
from logging_config import get_logger, log_performance, log_source_outcome

logger = get_logger(__name__)

SourceFetcher = Callable[[Location], Awaitable[Optional[object]]]

# Report slot -> adapter call. Slot names are the report's wire keys.
SOURCES: Dict[str, SourceFetcher] = {
    "crime": lambda loc: get_crime(loc.lat, loc.lng),
    "floodStations": lambda loc: get_flood_stations(loc.lat, loc.lng),
    "floodWarnings": lambda loc: get_flood_warnings(loc.lat, loc.lng),
    "housePrices": lambda loc: get_house_prices(loc.postcode),
    "bathingWater": lambda loc: get_bathing_water(loc.lat, loc.lng),
    "species": lambda loc: get_species(loc.lat, loc.lng),
    "listedBuildings": lambda loc: get_listed_buildings(loc.lat, loc.lng),
    "ancientTrees": lambda loc: get_ancient_trees(loc.lat, loc.lng),
    "naturalEngland": lambda loc: get_natural_england(loc.lat, loc.lng),
    "sewageOverflows": lambda loc: get_sewage_overflows(loc.lat, loc.lng),
    "climateOutlook": lambda loc: get_climate_outlook(loc.lat, loc.lng),
}


async def _run_source(name: str, fetch: SourceFetcher, location: Location,
                      request_id: Optional[str]) -> SourceOutcome:
    """Run one adapter; whatever happens, return an outcome for its slot."""
    start = time.monotonic()
    error = None
    token = failure_reason.set(None)
    try:
        data = await fetch(location)
        error = failure_reason.get()
    except Exception as e:
        # Adapters fold their own failures into None; this covers anything that escapes
        data = None
        error = classify_error(e)
        logger.error(f"Source {name} raised: {e}", extra={
            "request_id": request_id,
            "source_name": name,
            "error_type": error,
        })
    finally:
        failure_reason.reset(token)
    duration_ms = int((time.monotonic() - start) * 1000)

    if data is None:
        if error:
            record_error(error)
        outcome = SourceOutcome.absent(name, error or "unavailable", duration_ms)
    else:
        outcome = SourceOutcome(source=name, data=data, duration_ms=duration_ms)

    record_source_outcome(name, outcome.present, duration_ms, outcome.error)
    log_source_outcome(logger, name, outcome.present, duration_ms,
                       request_id=request_id, error_type=outcome.error)
    return outcome


async def _disabled(name: str) -> SourceOutcome:
    record_source_outcome(name, False, 0, "disabled")
    return SourceOutcome.absent(name, "disabled")


async def build_area_profile(
    location: Location,
    request_id: Optional[str] = None,
    sources: Optional[Dict[str, SourceFetcher]] = None,
    disabled: Optional[Iterable[str]] = None,
) -> AreaProfile:
    """
    Fan out to every source for a resolved location.

    Args:
        location: Resolved location
        request_id: Optional request ID for tracing
        sources: Slot -> adapter mapping (defaults to SOURCES)
        disabled: Slot names to skip (defaults to the configured disabled sources)

    Returns:
        AreaProfile with every slot filled or null
    """
    sources = SOURCES if sources is None else sources
    disabled = set(get_settings().disabled_sources if disabled is None else disabled)

    tasks = [
        _disabled(name) if name in disabled else _run_source(name, fetch, location, request_id)
        for name, fetch in sources.items()
    ]
    outcomes = await asyncio.gather(*tasks)

    return compose_report(location, {o.source: o for o in outcomes})


async def profile_postcode(postcode: str, request_id: Optional[str] = None) -> AreaProfile:
    """
    Resolve a postcode and build its area profile.

    Raises:
        LocationNotFoundError: the postcode could not be resolved (no source is queried)
    """
    start = time.monotonic()
    query = normalize_postcode(postcode)

    location = await lookup_postcode(query)
    if location is None:
        record_request_metrics(query, found=False, response_time=time.monotonic() - start)
        raise LocationNotFoundError(query)

    logger.info("Postcode resolved", extra={
        "request_id": request_id,
        "postcode": location.postcode,
        "lat": location.lat,
        "lon": location.lng,
    })

    profile = await build_area_profile(location, request_id=request_id)

    elapsed = time.monotonic() - start
    available = sum(1 for status in profile.sources.values() if status.available)
    record_request_metrics(location.postcode, found=True, response_time=elapsed, sources_available=available)
    log_performance(logger, "area_profile", elapsed, request_id=request_id, postcode=location.postcode)
    return profile
