"""
Climate outlook from Open-Meteo CMIP6 downscaled projections
Compares a historical baseline window with a mid-century projection window for the
same point: summer temperatures, seasonal rainfall and hot days.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from data_sources import http_client
from data_sources.error_handling import SchemaError, absent_on_failure, parse_payload
from data_sources.models import ClimateOutlook, ClimateWindowStats
from data_sources.settings import get_settings
from data_sources.utils import mean

OPEN_METEO_CLIMATE_URL = "https://climate-api.open-meteo.com/v1/climate"

BASELINE_WINDOW = ("1991-01-01", "2010-12-31")
FUTURE_WINDOW = ("2031-01-01", "2050-12-31")

DAILY_VARIABLES = ("temperature_2m_max", "temperature_2m_min", "precipitation_sum")

SUMMER_MONTHS = (6, 7, 8)
WINTER_MONTHS = (12, 1, 2)
HOT_DAY_THRESHOLD_C = 25.0


class _ClimateResponse(BaseModel):
    daily: Dict[str, List[Union[float, str, None]]]


@dataclass
class WindowSummary:
    """Unrounded seasonal statistics for one time window."""
    period: str
    summer_max: List[float] = field(default_factory=list)
    summer_min: List[float] = field(default_factory=list)
    summer_precip: List[float] = field(default_factory=list)
    winter_precip: List[float] = field(default_factory=list)
    hot_days: int = 0
    years: set = field(default_factory=set)

    @property
    def summer_max_c(self) -> Optional[float]:
        return mean(self.summer_max)

    @property
    def summer_min_c(self) -> Optional[float]:
        return mean(self.summer_min)

    @property
    def summer_precip_mm(self) -> Optional[float]:
        return mean(self.summer_precip)

    @property
    def winter_precip_mm(self) -> Optional[float]:
        return mean(self.winter_precip)

    @property
    def hot_days_per_year(self) -> Optional[float]:
        if not self.years:
            return None
        return self.hot_days / len(self.years)

    def to_stats(self) -> ClimateWindowStats:
        return ClimateWindowStats(
            period=self.period,
            summer_max_c=_round(self.summer_max_c, 1),
            summer_min_c=_round(self.summer_min_c, 1),
            winter_precip_mm=_round(self.winter_precip_mm, 2),
            summer_precip_mm=_round(self.summer_precip_mm, 2),
            hot_days_per_year=_round(self.hot_days_per_year, 1),
        )


def _round(value: Optional[float], ndigits: int) -> Optional[float]:
    return None if value is None else round(value, ndigits)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _series(daily: Dict[str, List[Any]], variable: str, model: str) -> List[Any]:
    # Multi-model responses suffix each variable with the model name
    series = daily.get(variable)
    if series is None:
        series = daily.get(f"{variable}_{model}")
    if series is None:
        raise SchemaError(f"Open-Meteo response has no {variable}", "open_meteo_climate")
    return series


def summarize_window(daily: Dict[str, List[Any]], period: str, model: str) -> WindowSummary:
    """Seasonal statistics for one window of daily values."""
    times = daily.get("time")
    if times is None:
        raise SchemaError("Open-Meteo response has no time axis", "open_meteo_climate")
    tmax = _series(daily, "temperature_2m_max", model)
    tmin = _series(daily, "temperature_2m_min", model)
    precip = _series(daily, "precipitation_sum", model)

    summary = WindowSummary(period=period)
    for i, day in enumerate(times):
        if not isinstance(day, str) or len(day) < 7:
            continue
        month = int(day[5:7])
        summary.years.add(day[:4])

        day_max = tmax[i] if i < len(tmax) else None
        day_min = tmin[i] if i < len(tmin) else None
        day_precip = precip[i] if i < len(precip) else None

        if _is_number(day_max) and day_max > HOT_DAY_THRESHOLD_C:
            summary.hot_days += 1

        if month in SUMMER_MONTHS:
            if _is_number(day_max):
                summary.summer_max.append(day_max)
            if _is_number(day_min):
                summary.summer_min.append(day_min)
            if _is_number(day_precip):
                summary.summer_precip.append(day_precip)
        elif month in WINTER_MONTHS:
            if _is_number(day_precip):
                summary.winter_precip.append(day_precip)

    return summary


def percent_change(baseline: Optional[float], future: Optional[float]) -> Optional[int]:
    """Whole-percent change from baseline; None when baseline is missing or zero."""
    if baseline is None or future is None or baseline == 0:
        return None
    return round((future - baseline) / baseline * 100)


def compare_windows(baseline: WindowSummary, future: WindowSummary, model: str) -> Optional[ClimateOutlook]:
    """Deltas between windows; None when either has no summer temperature data."""
    if baseline.summer_max_c is None or future.summer_max_c is None:
        return None

    baseline_stats = baseline.to_stats()
    future_stats = future.to_stats()
    # Warming is the difference of the reported (rounded) means
    return ClimateOutlook(
        model=model,
        baseline=baseline_stats,
        future=future_stats,
        summer_warming_c=round(future_stats.summer_max_c - baseline_stats.summer_max_c, 1),
        winter_precip_change_pct=percent_change(baseline.winter_precip_mm, future.winter_precip_mm),
        summer_precip_change_pct=percent_change(baseline.summer_precip_mm, future.summer_precip_mm),
        hot_days_baseline=_round(baseline.hot_days_per_year, 1),
        hot_days_future=_round(future.hot_days_per_year, 1),
    )


async def _fetch_window(lat: float, lng: float, window, model: str) -> WindowSummary:
    start, end = window
    payload = await http_client.fetch_json(
        OPEN_METEO_CLIMATE_URL,
        api_name="open_meteo_climate",
        params={
            "latitude": str(lat),
            "longitude": str(lng),
            "start_date": start,
            "end_date": end,
            "models": model,
            "daily": ",".join(DAILY_VARIABLES),
        },
    )
    if isinstance(payload, dict) and payload.get("error"):
        raise SchemaError(f"Open-Meteo error: {payload.get('reason')}", "open_meteo_climate")
    response = parse_payload(_ClimateResponse, payload, "open_meteo_climate")
    return summarize_window(response.daily, f"{start[:4]}-{end[:4]}", model)


@absent_on_failure("open_meteo_climate")
async def get_climate_outlook(lat: float, lng: float) -> Optional[ClimateOutlook]:
    """
    Baseline vs. mid-century climate for a point.

    The projection window is only requested once the baseline has usable
    summer temperatures.
    """
    model = get_settings().climate_model
    baseline = await _fetch_window(lat, lng, BASELINE_WINDOW, model)
    if baseline.summer_max_c is None:
        return None
    future = await _fetch_window(lat, lng, FUTURE_WINDOW, model)
    return compare_windows(baseline, future, model)
