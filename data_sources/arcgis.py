"""
ArcGIS FeatureServer queries
Shared query builder and response models for the ArcGIS-hosted layers
(Historic England, Woodland Trust, Natural England, storm overflow returns).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from data_sources import http_client
from data_sources.error_handling import check_arcgis_error, parse_payload
from data_sources.utils import haversine_km, ring_centroid

WGS84 = "4326"


@dataclass(frozen=True)
class ArcGISQuery:
    """
    Spatial query against one FeatureServer layer.

    Either a point with a search distance (metres) or an envelope
    (xmin, ymin, xmax, ymax in WGS84) must be given.
    """
    out_fields: Tuple[str, ...] = ()
    point: Optional[Tuple[float, float]] = None
    distance_m: Optional[int] = None
    envelope: Optional[Tuple[float, float, float, float]] = None
    return_geometry: bool = False
    record_count: Optional[int] = None
    count_only: bool = False

    def __post_init__(self):
        if (self.point is None) == (self.envelope is None):
            raise ValueError("ArcGISQuery needs exactly one of point or envelope")
        if self.point is not None and self.distance_m is None:
            raise ValueError("point queries need distance_m")

    @classmethod
    def around(cls, lat: float, lng: float, distance_m: int, **kwargs) -> "ArcGISQuery":
        return cls(point=(lng, lat), distance_m=distance_m, **kwargs)

    @classmethod
    def within_box(cls, lat: float, lng: float, delta_deg: float, **kwargs) -> "ArcGISQuery":
        return cls(envelope=(lng - delta_deg, lat - delta_deg, lng + delta_deg, lat + delta_deg), **kwargs)

    def params(self) -> Dict[str, str]:
        params = {
            "inSR": WGS84,
            "spatialRel": "esriSpatialRelIntersects",
            "f": "json",
        }
        if self.point is not None:
            params.update({
                "geometry": f"{self.point[0]},{self.point[1]}",
                "geometryType": "esriGeometryPoint",
                "distance": str(self.distance_m),
                "units": "esriSRUnit_Meter",
            })
        else:
            params.update({
                "geometry": ",".join(str(v) for v in self.envelope),
                "geometryType": "esriGeometryEnvelope",
            })

        if self.count_only:
            params["returnCountOnly"] = "true"
            return params

        params["outFields"] = ",".join(self.out_fields) if self.out_fields else "*"
        params["returnGeometry"] = "true" if self.return_geometry else "false"
        if self.return_geometry:
            params["outSR"] = WGS84
        if self.record_count is not None:
            params["resultRecordCount"] = str(self.record_count)
        return params


class ArcGISGeometry(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None
    rings: Optional[List[List[List[float]]]] = None


class ArcGISFeature(BaseModel):
    attributes: Dict[str, Any] = {}
    geometry: Optional[ArcGISGeometry] = None


class ArcGISFeatureSet(BaseModel):
    features: List[ArcGISFeature] = []
    exceededTransferLimit: bool = False


class _ArcGISCount(BaseModel):
    count: int = 0


def attr_text(attributes: Dict[str, Any], key: str) -> Optional[str]:
    """String attribute value, or None when missing or blank."""
    value = attributes.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def feature_distance_km(feature: ArcGISFeature, lat: float, lng: float) -> Optional[float]:
    """
    Distance from the query point to a feature.

    Polygons are placed at the vertex mean of their first ring, which is an
    approximation (not the nearest edge). Points use x/y.
    """
    geom = feature.geometry
    if geom is None:
        return None
    if geom.rings is not None:
        if not geom.rings:
            return None
        centre = ring_centroid(geom.rings[0])
        if centre is None:
            return None
        return haversine_km(lat, lng, centre[0], centre[1])
    if geom.x is None or geom.y is None:
        return None
    return haversine_km(lat, lng, geom.y, geom.x)


async def query_features(layer_url: str, query: ArcGISQuery, api_name: str) -> ArcGISFeatureSet:
    """Run a feature query; raises APIError/SchemaError on failure."""
    payload = await http_client.fetch_json(
        f"{layer_url}/query",
        api_name=api_name,
        params=query.params(),
    )
    check_arcgis_error(payload, api_name)
    return parse_payload(ArcGISFeatureSet, payload, api_name)


async def query_count(layer_url: str, query: ArcGISQuery, api_name: str) -> int:
    """Run a returnCountOnly query; raises APIError/SchemaError on failure."""
    payload = await http_client.fetch_json(
        f"{layer_url}/query",
        api_name=api_name,
        params=query.params(),
    )
    check_arcgis_error(payload, api_name)
    return parse_payload(_ArcGISCount, payload, api_name).count
