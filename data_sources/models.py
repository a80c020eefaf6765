"""
Domain records produced by the source adapters
Immutable pydantic models; serialized with camelCase keys (Location keeps snake_case).
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Base for adapter output: frozen, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Location(BaseModel):
    """Canonical resolved postcode."""
    model_config = ConfigDict(frozen=True)

    postcode: str
    lat: float
    lng: float
    admin_district: Optional[str] = None
    parish: Optional[str] = None
    lsoa: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    admin_ward: Optional[str] = None


# Crime

class CrimeCategoryCount(Record):
    category: str
    count: int


class CrimeSummary(Record):
    total: int
    by_category: List[CrimeCategoryCount]
    month: str


# Flood monitoring

class FloodStation(Record):
    label: Optional[str] = None
    river: Optional[str] = None
    town: Optional[str] = None
    catchment: Optional[str] = None
    status: str = "unknown"
    lat: Optional[float] = None
    lng: Optional[float] = None
    distance: Optional[float] = None


class FloodStations(Record):
    count: int
    stations: List[FloodStation]
    rivers: List[str]
    catchments: List[str]


class FloodWarning(Record):
    description: Optional[str] = None
    severity: Optional[int] = None
    message: Optional[str] = None
    area: Optional[str] = None


class FloodWarnings(Record):
    count: int
    warnings: List[FloodWarning]


# House prices

class HouseSale(Record):
    amount: int
    date: Optional[str] = None
    type: str = "unknown"
    address: str = ""


class HousePrices(Record):
    sales: List[HouseSale]
    average_price: int
    count: int


# Bathing water

class BathingSite(Record):
    name: Optional[str] = None
    lat: float
    lng: float
    classification: str = "Unknown"
    district: str = ""
    distance: float


class BathingWater(Record):
    sites: List[BathingSite]


# Species

class NamedCount(Record):
    name: str
    count: int


class SpeciesSummary(Record):
    total_records: int
    groups: List[NamedCount]
    top_species: List[NamedCount]


# Listed buildings

class ListedBuilding(Record):
    name: Optional[str] = None
    grade: Optional[str] = None
    list_date: Optional[int] = None
    list_entry: Optional[int] = None


class ListedBuildings(Record):
    buildings: List[ListedBuilding]
    count: int
    by_grade: Dict[str, int]
    exceeded_limit: bool


# Ancient trees

class AncientTree(Record):
    species: Optional[str] = None
    category: Optional[str] = None
    distance: Optional[float] = None


class AncientTrees(Record):
    trees: List[AncientTree]
    count: int
    by_category: Dict[str, int]
    by_species: List[Tuple[str, int]]


# Natural England

class ProtectedSite(Record):
    name: Optional[str] = None
    area_ha: Optional[float] = None
    distance: Optional[float] = None


class GreenSpace(Record):
    name: Optional[str] = None
    status: Optional[str] = None
    area_ha: Optional[float] = None
    distance: Optional[float] = None


class NaturalEngland(Record):
    sssis: List[ProtectedSite]
    nnrs: List[ProtectedSite]
    green_spaces: List[GreenSpace]
    open_access: bool
    open_access_count: int


# Sewage overflows

class SewageOverflow(Record):
    site_name: Optional[str] = None
    company: Optional[str] = None
    receiving_water: Optional[str] = None
    spill_count: int
    duration_hours: float
    distance: Optional[float] = None


class CompanySpills(Record):
    company: str
    sites: int
    spills: int
    hours: float


class SewageOverflows(Record):
    overflows: List[SewageOverflow]
    count: int
    total_spills: int
    total_duration_hours: float
    receiving_waters: List[str]
    by_company: List[CompanySpills]


# Climate outlook

class ClimateWindowStats(Record):
    period: str
    summer_max_c: Optional[float] = None
    summer_min_c: Optional[float] = None
    winter_precip_mm: Optional[float] = None
    summer_precip_mm: Optional[float] = None
    hot_days_per_year: Optional[float] = None


class ClimateOutlook(Record):
    model: str
    baseline: ClimateWindowStats
    future: ClimateWindowStats
    summer_warming_c: float
    winter_precip_change_pct: Optional[int] = None
    summer_precip_change_pct: Optional[int] = None
    hot_days_baseline: Optional[float] = None
    hot_days_future: Optional[float] = None
