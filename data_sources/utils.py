"""
Shared utilities for area profile data sources
Distance calculations and the grouping/ranking helpers used by several adapters
"""

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometres.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Distance in km (0.0 for identical points)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * \
        math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    # Rounding can push a fractionally above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def ring_centroid(ring: Sequence[Sequence[float]]) -> Optional[Tuple[float, float]]:
    """
    Mean of a polygon ring's vertices.

    Args:
        ring: Sequence of [x, y] (lon, lat) vertices

    Returns:
        (lat, lon) of the vertex mean, or None for an empty ring
    """
    points = [p for p in ring if len(p) >= 2]
    if not points:
        return None
    cx = sum(p[0] for p in points) / len(points)
    cy = sum(p[1] for p in points) / len(points)
    return cy, cx


def count_by(values: Iterable[Any]) -> Dict[Any, int]:
    """Group values and count occurrences, keyed in first-seen order."""
    return dict(Counter(values))


def sorted_counts(counts: Dict[Any, int], limit: Optional[int] = None) -> List[Tuple[Any, int]]:
    """
    Order (key, count) pairs by count descending; ties keep first-seen order.

    Args:
        counts: key -> count mapping
        limit: Optional cap on the number of pairs returned
    """
    ordered = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ordered if limit is None else ordered[:limit]


def sort_by_distance(items: List[Any]) -> List[Any]:
    """Sort items with a `distance` attribute ascending; unknown distances go last."""
    return sorted(items, key=lambda item: (item.distance is None, item.distance or 0.0))


def unique_in_order(values: Iterable[Optional[str]]) -> List[str]:
    """De-duplicate non-empty strings, keeping first-seen order."""
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, or None for an empty sequence."""
    if not values:
        return None
    return sum(values) / len(values)


def first_of(value: Any) -> Any:
    """Linked-data APIs return a list where a property has several values; take the first."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def unwrap_label(value: Any) -> Any:
    """Unwrap {"_value": ...} / {"name": ...} literal objects from linked-data APIs."""
    value = first_of(value)
    if isinstance(value, dict):
        return value.get("_value", value.get("name"))
    return value


def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Validate that coordinates are within valid ranges.

    Args:
        lat, lon: Coordinates to validate

    Returns:
        True if coordinates are valid
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180
