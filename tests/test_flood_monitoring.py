import asyncio

from data_sources.error_handling import UpstreamTimeoutError
from data_sources.flood_monitoring import get_flood_stations, get_flood_warnings

ACTIVE = "http://environment.data.gov.uk/flood-monitoring/def/core/statusActive"
CLOSED = "http://environment.data.gov.uk/flood-monitoring/def/core/statusClosed"


def _station(i, river, catchment, status=ACTIVE):
    return {
        "label": f"Station {i}",
        "riverName": river,
        "town": "London",
        "catchmentName": catchment,
        "status": status,
        "lat": 51.50 + i * 0.001,
        "long": -0.14,
    }


def test_stations_counts_all_details_ten(fetch_json):
    items = [_station(i, "River Thames", "Thames") for i in range(10)]
    items.append(_station(10, "River Lea", "Lee", status=CLOSED))
    items.append(_station(11, None, "Lee", status=None))
    fetch_json.return_value = {"items": items}

    result = asyncio.run(get_flood_stations(51.501, -0.1416))

    assert result.count == 12
    assert len(result.stations) == 10
    assert result.rivers == ["River Thames", "River Lea"]
    assert result.catchments == ["Thames", "Lee"]
    assert result.stations[0].status == "active"
    assert result.stations[0].distance < 1.0
    params = fetch_json.call_args.kwargs["params"]
    assert params["dist"] == "10"


def test_station_status_and_multi_valued_fields(fetch_json):
    fetch_json.return_value = {"items": [
        {"label": ["Kew Bridge", "Kew"], "lat": [51.48, 51.49], "long": [-0.28, -0.29], "status": CLOSED},
        {"label": "No status"},
    ]}

    result = asyncio.run(get_flood_stations(51.5, -0.2))

    kew, bare = result.stations
    assert kew.label == "Kew Bridge"
    assert kew.lat == 51.48
    assert kew.status == "closed"
    assert bare.status == "unknown"
    assert bare.distance is None


def test_warnings_show_five(fetch_json):
    fetch_json.return_value = {"items": [
        {"description": f"Area {i}", "severityLevel": 3, "message": "Flooding possible", "eaAreaName": "Thames"}
        for i in range(7)
    ]}

    result = asyncio.run(get_flood_warnings(51.5, -0.1))

    assert result.count == 7
    assert len(result.warnings) == 5
    assert result.warnings[0].severity == 3
    assert result.warnings[0].area == "Thames"
    assert fetch_json.call_args.kwargs["params"]["dist"] == "20"


def test_no_warnings(fetch_json):
    fetch_json.return_value = {"items": []}
    result = asyncio.run(get_flood_warnings(51.5, -0.1))
    assert result.count == 0
    assert result.warnings == []


def test_flood_failure_is_absent(fetch_json):
    fetch_json.side_effect = UpstreamTimeoutError("timed out", "ea_flood_stations")
    assert asyncio.run(get_flood_stations(51.5, -0.1)) is None
