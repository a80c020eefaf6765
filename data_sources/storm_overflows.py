"""
Storm overflow Event Duration Monitoring (sewage spills)
Overflows within 5km that recorded at least one spill in the latest annual return,
busiest first, with totals and a per-company breakdown.
"""

from typing import Any, Dict, List, Optional, Sequence

from data_sources.arcgis import ArcGISFeatureSet, ArcGISQuery, feature_distance_km, query_features
from data_sources.error_handling import absent_on_failure
from data_sources.models import CompanySpills, SewageOverflow, SewageOverflows
from data_sources.settings import get_settings

SEARCH_RADIUS_M = 5000
MAX_FEATURES = 200
OVERFLOW_DISPLAY_LIMIT = 20

# Field names differ between annual returns; first present name wins
SITE_NAME_FIELDS = ("Site_Name", "SiteName", "Site_Name_EA_Consents_Database")
COMPANY_FIELDS = ("Water_Company", "Company_Name", "WaterCompany")
RECEIVING_WATER_FIELDS = ("Receiving_Water", "ReceivingWater", "Receiving_Water_Name")
SPILL_COUNT_FIELDS = ("Spill_Count", "Counted_spills_using_12_24h_count_method", "Total_Spills")
DURATION_FIELDS = ("Total_Duration_hrs", "Total_Duration_Hours", "Duration_Hours")

UNKNOWN_COMPANY = "Unknown"


def _first_attr(attributes: Dict[str, Any], names: Sequence[str]) -> Any:
    for name in names:
        value = attributes.get(name)
        if value is not None and value != "":
            return value
    return None


def _number(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_overflows(feature_set: ArcGISFeatureSet, lat: float, lng: float) -> List[SewageOverflow]:
    """Overflows with at least one recorded spill."""
    overflows = []
    for f in feature_set.features:
        attrs = f.attributes
        spills = int(_number(_first_attr(attrs, SPILL_COUNT_FIELDS)))
        if spills < 1:
            continue
        overflows.append(SewageOverflow(
            site_name=_text(_first_attr(attrs, SITE_NAME_FIELDS)),
            company=_text(_first_attr(attrs, COMPANY_FIELDS)),
            receiving_water=_text(_first_attr(attrs, RECEIVING_WATER_FIELDS)),
            spill_count=spills,
            duration_hours=round(_number(_first_attr(attrs, DURATION_FIELDS)), 1),
            distance=feature_distance_km(f, lat, lng),
        ))
    return overflows


def summarize_overflows(overflows: List[SewageOverflow]) -> SewageOverflows:
    ranked = sorted(overflows, key=lambda o: o.spill_count, reverse=True)

    by_company: Dict[str, Dict[str, float]] = {}
    for o in ranked:
        bucket = by_company.setdefault(o.company or UNKNOWN_COMPANY, {"sites": 0, "spills": 0, "hours": 0.0})
        bucket["sites"] += 1
        bucket["spills"] += o.spill_count
        bucket["hours"] += o.duration_hours

    companies = sorted(
        (
            CompanySpills(company=name, sites=int(b["sites"]), spills=int(b["spills"]), hours=round(b["hours"], 1))
            for name, b in by_company.items()
        ),
        key=lambda c: c.spills,
        reverse=True,
    )

    return SewageOverflows(
        overflows=ranked[:OVERFLOW_DISPLAY_LIMIT],
        count=len(ranked),
        total_spills=sum(o.spill_count for o in ranked),
        total_duration_hours=round(sum(o.duration_hours for o in ranked), 1),
        receiving_waters=sorted({o.receiving_water for o in ranked if o.receiving_water}),
        by_company=companies,
    )


@absent_on_failure("storm_overflows")
async def get_sewage_overflows(lat: float, lng: float) -> Optional[SewageOverflows]:
    """
    Storm overflow spills within 5km.

    Returns:
        {overflows, count, totalSpills, totalDurationHours, receivingWaters, byCompany} or None
    """
    query = ArcGISQuery.around(
        lat, lng, SEARCH_RADIUS_M,
        return_geometry=True,
        record_count=MAX_FEATURES,
    )
    layer_url = get_settings().sewage_overflow_service_url.rstrip("/")
    feature_set = await query_features(layer_url, query, "storm_overflows")
    return summarize_overflows(parse_overflows(feature_set, lat, lng))
