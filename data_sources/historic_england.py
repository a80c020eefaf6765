"""
Historic England National Heritage List (listed buildings)
Listed buildings within 1km, highest grade first.
"""

from datetime import datetime, timezone
from typing import List, Optional

from data_sources.arcgis import ArcGISFeatureSet, ArcGISQuery, attr_text, query_features
from data_sources.error_handling import absent_on_failure
from data_sources.models import ListedBuilding, ListedBuildings
from data_sources.utils import count_by

NHLE_LAYER_URL = (
    "https://services-eu1.arcgis.com/ZOdPfBS3aqqDYPUQ/arcgis/rest/services/"
    "National_Heritage_List_for_England_NHLE_v02_VIEW/FeatureServer/0"
)

SEARCH_RADIUS_M = 1000
MAX_FEATURES = 200

# Grade I first, then II*, then II; anything else sorts last
GRADE_ORDER = {"I": 0, "II*": 1, "II": 2}
UNRANKED_GRADE = len(GRADE_ORDER)


def grade_rank(grade: Optional[str]) -> int:
    return GRADE_ORDER.get(grade, UNRANKED_GRADE)


def _list_year(epoch_ms) -> Optional[int]:
    if epoch_ms is None:
        return None
    try:
        return datetime.fromtimestamp(float(epoch_ms) / 1000, tz=timezone.utc).year
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _as_int(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def summarize_buildings(feature_set: ArcGISFeatureSet) -> ListedBuildings:
    buildings: List[ListedBuilding] = []
    for f in feature_set.features:
        attrs = f.attributes
        buildings.append(ListedBuilding(
            name=attr_text(attrs, "Name"),
            grade=attr_text(attrs, "Grade"),
            list_date=_list_year(attrs.get("ListDate")),
            list_entry=_as_int(attrs.get("ListEntry")),
        ))
    buildings.sort(key=lambda b: grade_rank(b.grade))

    return ListedBuildings(
        buildings=buildings,
        count=len(buildings),
        by_grade=count_by(b.grade or "Unknown" for b in buildings),
        exceeded_limit=feature_set.exceededTransferLimit,
    )


@absent_on_failure("historic_england")
async def get_listed_buildings(lat: float, lng: float) -> Optional[ListedBuildings]:
    """
    Listed buildings within 1km.

    Returns:
        {buildings, count, byGrade, exceededLimit} or None
    """
    query = ArcGISQuery.around(
        lat, lng, SEARCH_RADIUS_M,
        out_fields=("Name", "Grade", "ListDate", "ListEntry"),
        record_count=MAX_FEATURES,
    )
    feature_set = await query_features(NHLE_LAYER_URL, query, "historic_england")
    return summarize_buildings(feature_set)
