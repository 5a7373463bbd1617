# agri_dashboard/models.py
"""
Provider response shapes, modelled at the boundary.

Every field is optional: providers omit fields freely and the normalizer
decides the defaults. Nothing outside ``data_sources`` sees raw JSON except
where the public contract passes it through (polygon records, soil raw_data).
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

Number = Union[int, float]


class ProviderModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# --- weather (AgroMonitoring / OpenWeather share the OWM layout) ---

class MainReadings(ProviderModel):
    temp: Optional[Number] = None
    feels_like: Optional[Number] = None
    temp_min: Optional[Number] = None
    temp_max: Optional[Number] = None
    humidity: Optional[Number] = None
    pressure: Optional[Number] = None


class Wind(ProviderModel):
    speed: Optional[Number] = None
    deg: Optional[Number] = None


class Clouds(ProviderModel):
    all: Optional[Number] = None


class WeatherCondition(ProviderModel):
    id: Optional[int] = None
    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class WeatherReading(ProviderModel):
    dt: Optional[int] = None
    main: Optional[MainReadings] = None
    wind: Optional[Wind] = None
    clouds: Optional[Clouds] = None
    weather: List[WeatherCondition] = []
    rain: Optional[Dict[str, Any]] = None
    sys: Optional[Dict[str, Any]] = None


class OpenWeatherForecast(ProviderModel):
    list: List[WeatherReading] = []


class SunResults(ProviderModel):
    sunrise: Optional[str] = None
    sunset: Optional[str] = None


class SunTimes(ProviderModel):
    results: Optional[SunResults] = None
    status: Optional[str] = None


# --- agronomic monitoring ---

class Polygon(ProviderModel):
    id: Optional[str] = None
    name: Optional[str] = None
    geo_json: Optional[Dict[str, Any]] = None
    area: Optional[Number] = None
    center: Optional[List[float]] = None
    created_at: Optional[int] = None


class SoilReading(ProviderModel):
    dt: Optional[int] = None
    t0: Optional[Number] = None
    t10: Optional[Number] = None
    moisture: Optional[Number] = None


class NDVIStats(ProviderModel):
    min: Optional[Number] = None
    max: Optional[Number] = None
    mean: Optional[Number] = None
    std: Optional[Number] = None
    num: Optional[Number] = None
    median: Optional[Number] = None


class NDVIEntry(ProviderModel):
    dt: Optional[int] = None
    type: Optional[str] = None
    dc: Optional[Number] = None
    cl: Optional[Number] = None
    data: Optional[NDVIStats] = None


# --- reverse geocoding ---

class OpenCageComponents(ProviderModel):
    village: Optional[str] = None
    hamlet: Optional[str] = None
    city: Optional[str] = None
    town: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class OpenCageResult(ProviderModel):
    components: OpenCageComponents = OpenCageComponents()


class OpenCageResponse(ProviderModel):
    results: List[OpenCageResult] = []


class BigDataCloudResponse(ProviderModel):
    city: Optional[str] = None
    locality: Optional[str] = None
    principalSubdivision: Optional[str] = None
    countryName: Optional[str] = None


# --- normalized / request types ---

class LocationInfo(BaseModel):
    name: str
    state: str = ""
    country: str
    fullName: str


class PolygonIn(BaseModel):
    name: Optional[str] = None
    geo_json: Optional[Dict[str, Any]] = None
