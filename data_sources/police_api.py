"""
Police UK street-level crime
Latest month of street crime within ~1 mile of a point, grouped by category.
"""

from typing import List, Optional

from pydantic import BaseModel, RootModel

from data_sources import http_client
from data_sources.error_handling import absent_on_failure, parse_payload
from data_sources.models import CrimeCategoryCount, CrimeSummary
from data_sources.utils import count_by, sorted_counts

POLICE_CRIME_URL = "https://data.police.uk/api/crimes-street/all-crime"


class _Crime(BaseModel):
    category: str
    month: Optional[str] = None


class _CrimeList(RootModel[List[_Crime]]):
    pass


def summarize_crimes(crimes: List[_Crime]) -> CrimeSummary:
    """Count incidents per category (hyphens become spaces), busiest category first."""
    counts = count_by(c.category.replace("-", " ") for c in crimes)
    month = crimes[0].month if crimes and crimes[0].month else "unknown"
    return CrimeSummary(
        total=len(crimes),
        by_category=[CrimeCategoryCount(category=cat, count=n) for cat, n in sorted_counts(counts)],
        month=month,
    )


@absent_on_failure("police_uk")
async def get_crime(lat: float, lng: float) -> Optional[CrimeSummary]:
    """
    Street crime summary around a point.

    Returns:
        {total, byCategory: [{category, count}], month} or None
    """
    payload = await http_client.fetch_json(
        POLICE_CRIME_URL,
        api_name="police_uk",
        params={"lat": str(lat), "lng": str(lng)},
    )
    crimes = parse_payload(_CrimeList, payload, "police_uk").root
    return summarize_crimes(crimes)
