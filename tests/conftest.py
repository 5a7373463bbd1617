"""
pytest configuration for the dashboard API test suite.

Upstream providers are replaced by ``FakeSession``, a stand-in for
``requests.Session`` that answers from a routing table, so no test touches
the network.
"""
import json as jsonlib

import pytest
import requests
from fastapi.testclient import TestClient

from agri_dashboard.config import Settings, get_settings
from agri_dashboard.data_sources import UpstreamClient, get_client
from agri_dashboard.main import app


def make_response(status, payload, url):
    r = requests.Response()
    r.status_code = status
    r.url = url
    r.reason = "OK" if status < 400 else "Error"
    if isinstance(payload, (bytes, str)):
        r._content = payload.encode() if isinstance(payload, str) else payload
    else:
        r._content = jsonlib.dumps(payload).encode()
        r.headers["Content-Type"] = "application/json"
    return r


class FakeSession:
    """Answers ``request`` calls whose URL ends with a registered suffix."""

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, method, suffix, payload=None, status=200, exc=None):
        # later registrations win
        self.routes.insert(0, (method, suffix, payload, status, exc))

    def request(self, method, url, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params or {}, "json": json})
        for r_method, suffix, payload, status, exc in self.routes:
            if r_method == method and url.endswith(suffix):
                if exc is not None:
                    raise exc
                if callable(payload):
                    payload = payload(params or {}, json)
                return make_response(status, payload, url)
        raise AssertionError(f"unexpected upstream call: {method} {url}")

    def calls_to(self, suffix):
        return [c for c in self.calls if c["url"].endswith(suffix)]


AGRO = "api.agromonitoring.com/agro/1.0"


@pytest.fixture
def sample_weather():
    return {
        "dt": 1700000000,
        "main": {
            "temp": 300.15,
            "feels_like": 302.15,
            "temp_min": 299.15,
            "temp_max": 301.15,
            "humidity": 75,
            "pressure": 1010,
        },
        "wind": {"speed": 3.1, "deg": 200},
        "clouds": {"all": 40},
        "weather": [{"id": 741, "main": "Fog", "description": "fog", "icon": "50n"}],
    }


@pytest.fixture
def sample_sun():
    return {
        "results": {
            "sunrise": "2023-11-14T00:50:00+00:00",
            "sunset": "2023-11-14T12:30:00+00:00",
        },
        "status": "OK",
    }


@pytest.fixture
def sample_polygon():
    return {
        "id": "poly-1",
        "name": "North Field",
        "area": 123456,
        "center": [78.7047, 10.7905],
        "created_at": 1699000000,
        "geo_json": {
            "type": "Feature",
            "properties": {},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[
                    [78.7035, 10.7905],
                    [78.705, 10.79],
                    [78.7045, 10.789],
                    [78.7035, 10.7905],
                ]],
            },
        },
    }


@pytest.fixture
def sample_soil():
    return {"dt": 1700000000, "t0": 300.15, "t10": 298.15, "moisture": 0.21}


@pytest.fixture
def sample_ndvi():
    # deliberately out of order; the client sorts by time
    return [
        {"dt": 1699500000, "type": "s2", "cl": 5, "data": {"min": 0.3, "max": 0.8, "mean": 0.65, "std": 0.1, "num": 120}},
        {"dt": 1699000000, "type": "s2", "cl": 10, "data": {"min": 0.2, "max": 0.6, "mean": 0.42, "std": 0.08, "num": 118}},
    ]


@pytest.fixture
def sample_geocode():
    return {"city": "Tiruchirappalli", "principalSubdivision": "Tamil Nadu", "countryName": "India"}


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        AGRO_API_KEY="test-agro-key",
        OPENWEATHER_API_KEY=None,
        OPENCAGE_API_KEY=None,
        GEOCODER="bigdatacloud",
        WEATHER_PROVIDER="agro",
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def upstream(settings, session):
    return UpstreamClient(settings, session=session)


@pytest.fixture
def api(settings, upstream):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_client] = lambda: upstream
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
