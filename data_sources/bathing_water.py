"""
Environment Agency Bathing Water Quality
The API has no geo filter, so one page of sites is fetched and ranked by distance here.
"""

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator

from data_sources import http_client
from data_sources.error_handling import absent_on_failure, parse_payload
from data_sources.models import BathingSite, BathingWater
from data_sources.utils import first_of, haversine_km, unwrap_label

BATHING_WATER_URL = "https://environment.data.gov.uk/doc/bathing-water.json"

PAGE_SIZE = 50
NEAREST_LIMIT = 5

Label = Annotated[Optional[str], BeforeValidator(unwrap_label)]
FirstFloat = Annotated[Optional[float], BeforeValidator(first_of)]


class _Classification(BaseModel):
    name: Label = None


class _Assessment(BaseModel):
    complianceClassification: Optional[_Classification] = None


class _District(BaseModel):
    name: Label = None


class _Site(BaseModel):
    name: Label = None
    lat: FirstFloat = None
    long: FirstFloat = None
    latestComplianceAssessment: Annotated[Optional[_Assessment], BeforeValidator(first_of)] = None
    district: Annotated[Optional[_District], BeforeValidator(first_of)] = None


class _Result(BaseModel):
    items: List[_Site] = []


class _Response(BaseModel):
    result: _Result = _Result()


def nearest_sites(sites: List[_Site], lat: float, lng: float, limit: int = NEAREST_LIMIT) -> List[BathingSite]:
    """Sites with coordinates, nearest first."""
    ranked = []
    for s in sites:
        if s.lat is None or s.long is None:
            continue
        assessment = s.latestComplianceAssessment
        classification = None
        if assessment and assessment.complianceClassification:
            classification = assessment.complianceClassification.name
        ranked.append(BathingSite(
            name=s.name,
            lat=s.lat,
            lng=s.long,
            classification=classification or "Unknown",
            district=(s.district.name if s.district else None) or "",
            distance=haversine_km(lat, lng, s.lat, s.long),
        ))
    ranked.sort(key=lambda site: site.distance)
    return ranked[:limit]


@absent_on_failure("ea_bathing_water")
async def get_bathing_water(lat: float, lng: float) -> Optional[BathingWater]:
    """Five nearest designated bathing waters with their latest classification."""
    payload: Any = await http_client.fetch_json(
        BATHING_WATER_URL,
        api_name="ea_bathing_water",
        params={"_pageSize": str(PAGE_SIZE)},
    )
    sites = parse_payload(_Response, payload, "ea_bathing_water").result.items
    return BathingWater(sites=nearest_sites(sites, lat, lng))
