"""
Composite area profile report
One named slot per source; each slot holds that source's record or None.
"""

from dataclasses import dataclass
from typing import Dict, Generic, Optional, TypeVar

from data_sources.models import (
    AncientTrees,
    BathingWater,
    ClimateOutlook,
    CrimeSummary,
    FloodStations,
    FloodWarnings,
    HousePrices,
    ListedBuildings,
    Location,
    NaturalEngland,
    Record,
    SewageOverflows,
    SpeciesSummary,
)

T = TypeVar("T")


@dataclass(frozen=True)
class SourceOutcome(Generic[T]):
    """Outcome of one adapter call: a record, or absent with a reason."""
    source: str
    data: Optional[T] = None
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def present(self) -> bool:
        return self.data is not None

    @classmethod
    def absent(cls, source: str, error: str, duration_ms: int = 0) -> "SourceOutcome":
        return cls(source=source, data=None, error=error, duration_ms=duration_ms)


class SourceStatus(Record):
    available: bool
    error: Optional[str] = None


class AreaProfile(Record):
    """The composite report. Only `location` is mandatory."""
    location: Location
    crime: Optional[CrimeSummary] = None
    flood_stations: Optional[FloodStations] = None
    flood_warnings: Optional[FloodWarnings] = None
    house_prices: Optional[HousePrices] = None
    bathing_water: Optional[BathingWater] = None
    species: Optional[SpeciesSummary] = None
    listed_buildings: Optional[ListedBuildings] = None
    ancient_trees: Optional[AncientTrees] = None
    natural_england: Optional[NaturalEngland] = None
    sewage_overflows: Optional[SewageOverflows] = None
    climate_outlook: Optional[ClimateOutlook] = None
    sources: Dict[str, SourceStatus] = {}

    def to_json(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def compose_report(location: Location, outcomes: Dict[str, SourceOutcome]) -> AreaProfile:
    """Place each outcome into its slot; absent outcomes become null slots."""
    slots = {name: outcome.data for name, outcome in outcomes.items()}
    sources = {
        name: SourceStatus(available=outcome.present, error=outcome.error)
        for name, outcome in outcomes.items()
    }
    return AreaProfile(location=location, sources=sources, **slots)
