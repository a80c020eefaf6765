import asyncio

import pytest

from data_sources.arcgis import (
    ArcGISFeature,
    ArcGISQuery,
    attr_text,
    feature_distance_km,
    query_count,
    query_features,
)
from data_sources.error_handling import SchemaError

LAYER = "https://services.arcgis.com/example/arcgis/rest/services/Layer/FeatureServer/0"


def test_point_query_params():
    params = ArcGISQuery.around(51.5, -0.14, 1000, out_fields=("Name", "Grade"), record_count=200).params()
    assert params["geometry"] == "-0.14,51.5"
    assert params["geometryType"] == "esriGeometryPoint"
    assert params["distance"] == "1000"
    assert params["units"] == "esriSRUnit_Meter"
    assert params["inSR"] == "4326"
    assert params["f"] == "json"
    assert params["outFields"] == "Name,Grade"
    assert params["returnGeometry"] == "false"
    assert params["resultRecordCount"] == "200"
    assert "outSR" not in params


def test_envelope_query_params():
    params = ArcGISQuery.within_box(51.5, -0.1, 0.05, return_geometry=True).params()
    assert params["geometryType"] == "esriGeometryEnvelope"
    xmin, ymin, xmax, ymax = (float(v) for v in params["geometry"].split(","))
    assert xmin == pytest.approx(-0.15)
    assert ymin == pytest.approx(51.45)
    assert xmax == pytest.approx(-0.05)
    assert ymax == pytest.approx(51.55)
    assert params["outFields"] == "*"
    assert params["outSR"] == "4326"


def test_count_only_params():
    params = ArcGISQuery.around(51.5, -0.1, 3000, count_only=True).params()
    assert params["returnCountOnly"] == "true"
    assert "outFields" not in params


def test_query_needs_exactly_one_geometry():
    with pytest.raises(ValueError):
        ArcGISQuery()
    with pytest.raises(ValueError):
        ArcGISQuery(point=(0.0, 0.0), distance_m=10, envelope=(0, 0, 1, 1))
    with pytest.raises(ValueError):
        ArcGISQuery(point=(0.0, 0.0))


def test_feature_distance():
    point = ArcGISFeature(geometry={"x": -0.14, "y": 51.5})
    polygon = ArcGISFeature(geometry={"rings": [[[-0.15, 51.49], [-0.13, 51.49], [-0.13, 51.51], [-0.15, 51.51]]]})
    assert feature_distance_km(point, 51.5, -0.14) == 0.0
    assert feature_distance_km(polygon, 51.5, -0.14) == pytest.approx(0.0, abs=1e-6)
    assert feature_distance_km(ArcGISFeature(), 51.5, -0.14) is None
    assert feature_distance_km(ArcGISFeature(geometry={"rings": []}), 51.5, -0.14) is None


def test_attr_text():
    attrs = {"Name": "  Big Ben ", "Grade": "", "ListEntry": 1066, "Missing": None}
    assert attr_text(attrs, "Name") == "Big Ben"
    assert attr_text(attrs, "Grade") is None
    assert attr_text(attrs, "ListEntry") == "1066"
    assert attr_text(attrs, "Missing") is None
    assert attr_text(attrs, "Absent") is None


def test_query_features_hits_layer_query_endpoint(fetch_json):
    fetch_json.return_value = {"features": [{"attributes": {"Name": "A"}}], "exceededTransferLimit": True}

    result = asyncio.run(query_features(LAYER, ArcGISQuery.around(51.5, -0.1, 100), "test_layer"))

    assert result.exceededTransferLimit is True
    assert result.features[0].attributes == {"Name": "A"}
    assert fetch_json.call_args.args[0] == f"{LAYER}/query"
    assert fetch_json.call_args.kwargs["api_name"] == "test_layer"


def test_error_payload_raises_schema_error(fetch_json):
    fetch_json.return_value = {"error": {"code": 400, "message": "Invalid query"}}
    with pytest.raises(SchemaError) as excinfo:
        asyncio.run(query_features(LAYER, ArcGISQuery.around(51.5, -0.1, 100), "test_layer"))
    assert excinfo.value.status_code == 400


def test_query_count(fetch_json):
    fetch_json.return_value = {"count": 7}
    assert asyncio.run(query_count(LAYER, ArcGISQuery.around(51.5, -0.1, 100, count_only=True), "t")) == 7
