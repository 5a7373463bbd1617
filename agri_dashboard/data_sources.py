# agri_dashboard/data_sources.py
import logging
import re
from functools import lru_cache
from typing import List, Optional, Type, TypeVar

import requests
from fastapi import Depends
from pydantic import BaseModel, ValidationError

from .config import Settings, get_settings
from .errors import MisconfiguredService, UpstreamError
from .models import (
    BigDataCloudResponse,
    NDVIEntry,
    OpenCageResponse,
    OpenWeatherForecast,
    Polygon,
    SoilReading,
    SunTimes,
    WeatherReading,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_SECRET_PARAMS = re.compile(r"(appid|key)=[^&]+")


def redact(url: str) -> str:
    return _SECRET_PARAMS.sub(r"\1=***", url)


def _error_details(response: requests.Response):
    try:
        return response.json()
    except ValueError:
        return response.text or response.reason


class UpstreamClient:
    """Thin wrapper over every third-party provider the dashboard reads from."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    # --- transport ---

    def request_json(self, provider, method, url, params=None, json=None):
        """Perform one call; return parsed JSON or raise UpstreamError."""
        try:
            r = self.session.request(method, url, params=params, json=json, timeout=self.settings.HTTP_TIMEOUT)
        except requests.RequestException as e:
            logger.error("[%s] %s %s failed: %s", provider, method, redact(url), e)
            raise UpstreamError(provider, str(e))
        logger.debug("[%s] %s %s -> %s", provider, method, redact(url), r.status_code)
        if not r.ok:
            details = _error_details(r)
            raise UpstreamError(
                provider,
                f"Request failed with status code {r.status_code}",
                status_code=r.status_code,
                details=details,
            )
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(provider, f"Invalid JSON from {provider}: {e}", status_code=r.status_code)

    def _parse(self, provider: str, model: Type[M], payload) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise UpstreamError(provider, f"Unexpected {provider} response", details=str(e))

    def _parse_list(self, provider: str, model: Type[M], payload) -> List[M]:
        if not isinstance(payload, list):
            raise UpstreamError(provider, f"Unexpected {provider} response", details=payload)
        return [self._parse(provider, model, item) for item in payload]

    # --- AgroMonitoring ---

    def require_agro_key(self) -> str:
        if not self.settings.AGRO_API_KEY:
            raise MisconfiguredService("AgroMonitoring API key not configured")
        return self.settings.AGRO_API_KEY

    def _agro(self, method, path, params=None, json=None):
        params = dict(params or {}, appid=self.require_agro_key())
        url = f"{self.settings.AGRO_BASE_URL}{path}"
        return self.request_json("agromonitoring", method, url, params=params, json=json)

    def agro_weather(self, lat, lon) -> WeatherReading:
        data = self._agro("GET", "/weather", {"lat": lat, "lon": lon})
        return self._parse("agromonitoring", WeatherReading, data)

    def agro_forecast(self, lat, lon) -> List[WeatherReading]:
        data = self._agro("GET", "/weather/forecast", {"lat": lat, "lon": lon})
        return self._parse_list("agromonitoring", WeatherReading, data)

    def create_polygon(self, name: str, geo_json: dict) -> dict:
        data = self._agro("POST", "/polygons", json={"name": name, "geo_json": geo_json})
        # echoed back verbatim; the provider owns the record
        self._parse("agromonitoring", Polygon, data)
        return data

    def list_polygons(self) -> List[Polygon]:
        return self._parse_list("agromonitoring", Polygon, self._agro("GET", "/polygons"))

    def get_polygon(self, polygon_id: str) -> Polygon:
        return self._parse("agromonitoring", Polygon, self._agro("GET", f"/polygons/{polygon_id}"))

    def soil(self, polygon_id: str) -> SoilReading:
        return self._parse("agromonitoring", SoilReading, self._agro("GET", "/soil", {"polyid": polygon_id}))

    def ndvi_history(self, polygon_id: str, start: int, end: int) -> List[NDVIEntry]:
        data = self._agro("GET", "/ndvi/history", {"polyid": polygon_id, "start": start, "end": end})
        entries = self._parse_list("agromonitoring", NDVIEntry, data)
        return sorted(entries, key=lambda e: e.dt or 0)

    # --- OpenWeather ---

    def _openweather(self, path, lat, lon):
        if not self.settings.OPENWEATHER_API_KEY:
            raise MisconfiguredService("OpenWeather API key not configured")
        params = {"lat": lat, "lon": lon, "units": "metric", "appid": self.settings.OPENWEATHER_API_KEY}
        return self.request_json("openweather", "GET", f"{self.settings.OPENWEATHER_BASE_URL}{path}", params=params)

    def openweather_current(self, lat, lon) -> WeatherReading:
        return self._parse("openweather", WeatherReading, self._openweather("/weather", lat, lon))

    def openweather_forecast(self, lat, lon) -> OpenWeatherForecast:
        return self._parse("openweather", OpenWeatherForecast, self._openweather("/forecast", lat, lon))

    # --- sunrise-sunset.org ---

    def sun_times(self, lat, lon) -> SunTimes:
        data = self.request_json(
            "sunrise-sunset", "GET", self.settings.SUN_URL, params={"lat": lat, "lng": lon, "formatted": 0}
        )
        return self._parse("sunrise-sunset", SunTimes, data)

    # --- reverse geocoding ---

    def reverse_geocode(self, lat, lon):
        """Query the configured geocoder; returns its parsed response model."""
        if self.settings.geocoder == "opencage":
            if not self.settings.OPENCAGE_API_KEY:
                raise MisconfiguredService("OpenCage API key not configured")
            params = {
                "q": f"{lat},{lon}",
                "key": self.settings.OPENCAGE_API_KEY,
                "limit": 1,
                "no_annotations": 1,
            }
            data = self.request_json("opencage", "GET", self.settings.OPENCAGE_URL, params=params)
            return self._parse("opencage", OpenCageResponse, data)

        params = {"latitude": lat, "longitude": lon, "localityLanguage": "en"}
        data = self.request_json("bigdatacloud", "GET", self.settings.BIGDATACLOUD_URL, params=params)
        return self._parse("bigdatacloud", BigDataCloudResponse, data)


@lru_cache
def shared_session() -> requests.Session:
    return requests.Session()


def get_client(settings: Settings = Depends(get_settings)) -> UpstreamClient:
    # one connection pool for the process; stragglers from a failed gather keep using it
    return UpstreamClient(settings, session=shared_session())
