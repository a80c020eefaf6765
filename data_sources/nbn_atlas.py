"""
NBN Atlas species occurrence
Faceted occurrence searches within 2km: record counts by species group, then by taxon.
"""

from typing import List, Optional

from pydantic import BaseModel

from data_sources import http_client
from data_sources.error_handling import absent_on_failure, parse_payload
from data_sources.models import NamedCount, SpeciesSummary
from logging_config import get_logger, log_error

logger = get_logger(__name__)

NBN_OCCURRENCE_URL = "https://records-ws.nbnatlas.org/occurrences/search"

SEARCH_RADIUS_KM = 2
TAXON_FACET_LIMIT = 20
TOP_SPECIES_LIMIT = 15


class _FieldResult(BaseModel):
    label: Optional[str] = None
    count: int = 0


class _FacetResult(BaseModel):
    fieldResult: List[_FieldResult] = []


class _SearchResponse(BaseModel):
    totalRecords: int = 0
    facetResults: List[_FacetResult] = []

    def facet_counts(self) -> List[NamedCount]:
        if not self.facetResults:
            return []
        return [
            NamedCount(name=f.label or "Unknown", count=f.count)
            for f in self.facetResults[0].fieldResult
        ]


def _facet_params(lat: float, lng: float, facet: str, **extra) -> dict:
    params = {
        "lat": str(lat),
        "lon": str(lng),
        "radius": str(SEARCH_RADIUS_KM),
        "pageSize": "0",
        "facets": facet,
        "facet": "true",
    }
    params.update(extra)
    return params


async def _top_species(lat: float, lng: float) -> List[NamedCount]:
    """Most-recorded taxa; an empty list if this second query fails."""
    try:
        payload = await http_client.fetch_json(
            NBN_OCCURRENCE_URL,
            api_name="nbn_atlas",
            params=_facet_params(lat, lng, "taxon_name", flimit=str(TAXON_FACET_LIMIT)),
        )
        response = parse_payload(_SearchResponse, payload, "nbn_atlas")
    except Exception as e:
        log_error(logger, "partial", f"NBN Atlas taxon facet unavailable: {e}", api_name="nbn_atlas")
        return []
    return response.facet_counts()[:TOP_SPECIES_LIMIT]


@absent_on_failure("nbn_atlas")
async def get_species(lat: float, lng: float) -> Optional[SpeciesSummary]:
    """
    Species recorded near a point.

    Returns:
        {totalRecords, groups: [{name, count}], topSpecies: [{name, count}]} or None
    """
    payload = await http_client.fetch_json(
        NBN_OCCURRENCE_URL,
        api_name="nbn_atlas",
        params=_facet_params(lat, lng, "species_group"),
    )
    response = parse_payload(_SearchResponse, payload, "nbn_atlas")
    groups = sorted(response.facet_counts(), key=lambda g: g.count, reverse=True)

    top_species = await _top_species(lat, lng)

    return SpeciesSummary(
        total_records=response.totalRecords,
        groups=groups,
        top_species=top_species,
    )
