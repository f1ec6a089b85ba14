import httpx
import pytest

from energy_insights.collectors.dashboard_api import (
    DataSourceError,
    extract_records,
    fetch_records,
)

URL = "https://example.com/api/data"

RECORDS = [
    {"Timestamp": "2024-03-04T10:00:00", "Appliance": "TV", "Energy Usage (kWh)": 0.12},
    {"Timestamp": "1970-01-01T00:00:00", "Appliance": "Fridge", "Energy Usage (kWh)": 0.5},
]


def client_for(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_records():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, json=RECORDS)

    records = fetch_records(URL, headers={"Authorization": "Bearer abc"}, client=client_for(handler))

    assert records == RECORDS
    assert seen["url"] == URL
    assert seen["headers"]["ngrok-skip-browser-warning"] == "true"
    assert seen["headers"]["Authorization"] == "Bearer abc"


def test_fetch_unwraps_data_envelope():
    client = client_for(lambda request: httpx.Response(200, json={"data": RECORDS}))
    assert fetch_records(URL, client=client) == RECORDS


def test_http_error():
    client = client_for(lambda request: httpx.Response(503))
    with pytest.raises(DataSourceError, match="503"):
        fetch_records(URL, client=client)


def test_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DataSourceError, match="Network error"):
        fetch_records(URL, client=client_for(handler))


def test_invalid_json():
    client = client_for(lambda request: httpx.Response(200, text="<html>tunnel warning</html>"))
    with pytest.raises(DataSourceError, match="invalid JSON"):
        fetch_records(URL, client=client)


def test_unexpected_payload_shape():
    client = client_for(lambda request: httpx.Response(200, json={"status": "ok"}))
    with pytest.raises(DataSourceError, match="Expected a list"):
        fetch_records(URL, client=client)


def test_missing_url():
    with pytest.raises(DataSourceError):
        fetch_records("")


def test_extract_records():
    assert extract_records([]) == []
    assert extract_records({"data": [{"a": 1}]}) == [{"a": 1}]
    with pytest.raises(DataSourceError):
        extract_records("nope")
