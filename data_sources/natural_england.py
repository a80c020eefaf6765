"""
Natural England designated sites
SSSIs, National Nature Reserves and Country Parks within 3km, plus whether any
CRoW open-access land lies within the same radius.
"""

import asyncio
from typing import List, Optional

from data_sources.arcgis import (
    ArcGISFeature,
    ArcGISQuery,
    attr_text,
    feature_distance_km,
    query_count,
    query_features,
)
from data_sources.error_handling import absent_on_failure, classify_error
from data_sources.models import GreenSpace, NaturalEngland, ProtectedSite
from data_sources.utils import sort_by_distance
from logging_config import get_logger, log_error

logger = get_logger(__name__)

NATURAL_ENGLAND_BASE_URL = "https://services.arcgis.com/JJzESW51TqeY9uat/arcgis/rest/services"

SSSI_SERVICE = "SSSI_England"
NNR_SERVICE = "National_Nature_Reserves_England"
COUNTRY_PARK_SERVICE = "Country_Parks_England"
CROW_SERVICE = "CRoW_Act_2000_Access_Layer"

SEARCH_RADIUS_M = 3000
MAX_FEATURES = 20


def _layer_url(service: str) -> str:
    return f"{NATURAL_ENGLAND_BASE_URL}/{service}/FeatureServer/0"


def _area(feature: ArcGISFeature) -> Optional[float]:
    value = feature.attributes.get("MEASURE")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


async def _features(service: str, out_fields, lat: float, lng: float) -> Optional[List[ArcGISFeature]]:
    """One layer's features, or None if that query failed."""
    query = ArcGISQuery.around(
        lat, lng, SEARCH_RADIUS_M,
        out_fields=out_fields,
        return_geometry=True,
        record_count=MAX_FEATURES,
    )
    try:
        feature_set = await query_features(_layer_url(service), query, "natural_england")
    except Exception as e:
        log_error(logger, classify_error(e), f"Natural England {service} unavailable: {e}",
                  api_name="natural_england")
        return None
    return feature_set.features


async def _open_access_count(lat: float, lng: float) -> int:
    """Number of CRoW access polygons nearby; 0 if the count query failed."""
    query = ArcGISQuery.around(lat, lng, SEARCH_RADIUS_M, count_only=True)
    try:
        return await query_count(_layer_url(CROW_SERVICE), query, "natural_england")
    except Exception as e:
        log_error(logger, classify_error(e), f"Natural England {CROW_SERVICE} unavailable: {e}",
                  api_name="natural_england")
        return 0


def protected_sites(features: List[ArcGISFeature], lat: float, lng: float) -> List[ProtectedSite]:
    return sort_by_distance([
        ProtectedSite(
            name=attr_text(f.attributes, "NAME"),
            area_ha=_area(f),
            distance=feature_distance_km(f, lat, lng),
        )
        for f in features
    ])


def green_spaces(features: List[ArcGISFeature], lat: float, lng: float) -> List[GreenSpace]:
    return sort_by_distance([
        GreenSpace(
            name=attr_text(f.attributes, "NAME"),
            status=attr_text(f.attributes, "STATUS"),
            area_ha=_area(f),
            distance=feature_distance_km(f, lat, lng),
        )
        for f in features
    ])


@absent_on_failure("natural_england")
async def get_natural_england(lat: float, lng: float) -> Optional[NaturalEngland]:
    """
    Protected and accessible green sites within 3km.

    A failed layer contributes an empty list; the section is absent only when
    all three feature layers fail.

    Returns:
        {sssis, nnrs, greenSpaces, openAccess, openAccessCount} or None
    """
    sssi, nnr, parks, crow_count = await asyncio.gather(
        _features(SSSI_SERVICE, ("NAME", "MEASURE"), lat, lng),
        _features(NNR_SERVICE, ("NAME", "MEASURE"), lat, lng),
        _features(COUNTRY_PARK_SERVICE, ("NAME", "STATUS", "MEASURE"), lat, lng),
        _open_access_count(lat, lng),
    )

    if sssi is None and nnr is None and parks is None:
        return None

    return NaturalEngland(
        sssis=protected_sites(sssi or [], lat, lng),
        nnrs=protected_sites(nnr or [], lat, lng),
        green_spaces=green_spaces(parks or [], lat, lng),
        open_access=crow_count > 0,
        open_access_count=crow_count,
    )
