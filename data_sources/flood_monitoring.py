"""
Environment Agency real-time flood monitoring
Monitoring stations within 10km and active flood warnings within 20km.
"""

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator

from data_sources import http_client
from data_sources.error_handling import absent_on_failure, parse_payload
from data_sources.models import FloodStation, FloodStations, FloodWarning, FloodWarnings
from data_sources.utils import first_of, haversine_km, unique_in_order

FLOOD_API_URL = "https://environment.data.gov.uk/flood-monitoring/id"

STATION_RADIUS_KM = 10
STATION_DISPLAY_LIMIT = 10
WARNING_RADIUS_KM = 20
WARNING_DISPLAY_LIMIT = 5

FirstFloat = Annotated[Optional[float], BeforeValidator(first_of)]
FirstStr = Annotated[Optional[str], BeforeValidator(first_of)]


class _Station(BaseModel):
    label: FirstStr = None
    riverName: FirstStr = None
    town: FirstStr = None
    catchmentName: FirstStr = None
    status: FirstStr = None
    lat: FirstFloat = None
    long: FirstFloat = None


class _StationList(BaseModel):
    items: List[_Station] = []


class _Warning(BaseModel):
    description: Optional[str] = None
    severityLevel: Optional[int] = None
    message: Optional[str] = None
    eaAreaName: Optional[str] = None


class _WarningList(BaseModel):
    items: List[_Warning] = []


def _station_status(status: Optional[str]) -> str:
    """Status is a URI such as http://environment.data.gov.uk/flood-monitoring/def/core/statusActive."""
    if status and "Active" in status:
        return "active"
    if status and "Closed" in status:
        return "closed"
    return "unknown"


def summarize_stations(stations: List[_Station], lat: float, lng: float) -> FloodStations:
    """Detail the first stations in upstream order; totals and rivers cover all of them."""
    detailed = []
    for s in stations[:STATION_DISPLAY_LIMIT]:
        distance = None
        if s.lat is not None and s.long is not None:
            distance = haversine_km(lat, lng, s.lat, s.long)
        detailed.append(FloodStation(
            label=s.label,
            river=s.riverName,
            town=s.town,
            catchment=s.catchmentName,
            status=_station_status(s.status),
            lat=s.lat,
            lng=s.long,
            distance=distance,
        ))

    return FloodStations(
        count=len(stations),
        stations=detailed,
        rivers=unique_in_order(s.riverName for s in stations),
        catchments=unique_in_order(s.catchmentName for s in stations),
    )


def summarize_warnings(warnings: List[_Warning]) -> FloodWarnings:
    return FloodWarnings(
        count=len(warnings),
        warnings=[
            FloodWarning(
                description=w.description,
                severity=w.severityLevel,
                message=w.message,
                area=w.eaAreaName,
            )
            for w in warnings[:WARNING_DISPLAY_LIMIT]
        ],
    )


def _geo_params(lat: float, lng: float, dist_km: int) -> dict:
    return {"lat": str(lat), "long": str(lng), "dist": str(dist_km)}


@absent_on_failure("ea_flood_stations")
async def get_flood_stations(lat: float, lng: float) -> Optional[FloodStations]:
    """Monitoring stations within 10km (true total, 10 detailed, distinct rivers/catchments)."""
    payload: Any = await http_client.fetch_json(
        f"{FLOOD_API_URL}/stations",
        api_name="ea_flood_stations",
        params=_geo_params(lat, lng, STATION_RADIUS_KM),
    )
    stations = parse_payload(_StationList, payload, "ea_flood_stations").items
    return summarize_stations(stations, lat, lng)


@absent_on_failure("ea_flood_warnings")
async def get_flood_warnings(lat: float, lng: float) -> Optional[FloodWarnings]:
    """Active flood alerts/warnings within 20km (true total, 5 displayed)."""
    payload: Any = await http_client.fetch_json(
        f"{FLOOD_API_URL}/floods",
        api_name="ea_flood_warnings",
        params=_geo_params(lat, lng, WARNING_RADIUS_KM),
    )
    warnings = parse_payload(_WarningList, payload, "ea_flood_warnings").items
    return summarize_warnings(warnings)
