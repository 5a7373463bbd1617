# agri_dashboard/calculations.py
import math
import time
from datetime import datetime, timezone
from typing import List, Optional

from .errors import InvalidParameter
from .models import (
    BigDataCloudResponse,
    LocationInfo,
    MainReadings,
    NDVIEntry,
    OpenCageResponse,
    Polygon,
    SoilReading,
    SunTimes,
    WeatherCondition,
    WeatherReading,
)

KELVIN_OFFSET = 273.15

ICON_BY_BUCKET = {
    200: "11d",  # thunderstorm
    300: "09d",  # drizzle
    500: "10d",  # rain
    600: "13d",  # snow
    700: "50d",  # mist / fog
    800: "01d",  # clear
}
DEFAULT_ICON = "01d"

DEFAULT_CONDITION = WeatherCondition(id=800, main="Clear", description="clear sky")

HEALTH_BANDS = [(0.6, "Excellent"), (0.4, "Good"), (0.2, "Fair")]


def round_half_up(value) -> int:
    return int(math.floor(value + 0.5))


def kelvin_to_celsius(kelvin) -> int:
    return round_half_up(kelvin - KELVIN_OFFSET)


def weather_icon(code) -> str:
    bucket = (int(code) // 100) * 100
    return ICON_BY_BUCKET.get(bucket, DEFAULT_ICON)


def to_celsius(value, kelvin: bool) -> int:
    if not value:
        return 0
    return kelvin_to_celsius(value) if kelvin else round_half_up(value)


def iso_utc(ts) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iso_date(ts) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def epoch_seconds(iso_string: Optional[str]):
    if not iso_string:
        return None
    return int(datetime.fromisoformat(iso_string.replace("Z", "+00:00")).timestamp())


def now_epoch() -> int:
    return int(time.time())


def area_hectares(area) -> str:
    if not area:
        return "N/A"
    return f"{area / 10000:.2f}"


# --- locations ---

def default_location() -> LocationInfo:
    return LocationInfo(name="Current Location", state="", country="India", fullName="Current Location")


def location_from_opencage(resp: OpenCageResponse) -> LocationInfo:
    if not resp.results:
        raise ValueError("no geocoding results")
    comp = resp.results[0].components
    village = comp.village or comp.hamlet or ""
    major = comp.city or comp.town or comp.county or "Current Location"
    state = comp.state or ""
    country = comp.country or "India"
    tail = f"{major}, {state}" if state else major
    full_name = f"{village}, {tail}" if village else tail
    return LocationInfo(name=village or major, state=state, country=country, fullName=full_name)


def location_from_bigdatacloud(resp: BigDataCloudResponse) -> LocationInfo:
    name = resp.city or resp.locality or resp.principalSubdivision or "Current Location"
    state = resp.principalSubdivision or ""
    return LocationInfo(
        name=name,
        state=state,
        country=resp.countryName or "India",
        fullName=f"{name}, {state}" if state else name,
    )


def country_code(location: LocationInfo, fallback: Optional[str] = None) -> str:
    if location.country == "India":
        return "IN"
    return fallback or "IN"


# --- weather ---

def normalize_conditions(conditions: List[WeatherCondition]) -> List[dict]:
    first = conditions[0] if conditions else DEFAULT_CONDITION
    code = first.id or 800
    return [{
        "id": code,
        "main": first.main or "Clear",
        "description": first.description or "clear sky",
        "icon": weather_icon(code),
    }]


def normalize_main(main: Optional[MainReadings], kelvin: bool) -> dict:
    main = main or MainReadings()
    return {
        "temp": to_celsius(main.temp, kelvin),
        "feels_like": to_celsius(main.feels_like, kelvin),
        "temp_min": to_celsius(main.temp_min, kelvin),
        "temp_max": to_celsius(main.temp_max, kelvin),
        "humidity": main.humidity or 0,
        "pressure": main.pressure or 0,
    }


def normalize_wind(reading: WeatherReading) -> dict:
    wind = reading.wind
    return {"speed": (wind and wind.speed) or 0, "deg": (wind and wind.deg) or 0}


def normalize_clouds(reading: WeatherReading) -> dict:
    return {"all": (reading.clouds and reading.clouds.all) or 0}


def sun_from(reading: WeatherReading, sun: Optional[SunTimes]) -> dict:
    if sun is not None and sun.results is not None:
        return {"sunrise": epoch_seconds(sun.results.sunrise), "sunset": epoch_seconds(sun.results.sunset)}
    sys = reading.sys or {}
    return {"sunrise": sys.get("sunrise"), "sunset": sys.get("sunset")}


def normalize_weather(reading: WeatherReading, location: LocationInfo, lat: float, lon: float,
                      sun: Optional[SunTimes] = None, kelvin: bool = True) -> dict:
    sys = reading.sys or {}
    return {
        "name": location.name,
        "fullName": location.fullName,
        "coordinates": {"lat": lat, "lon": lon},
        "sys": dict(
            country=country_code(location, sys.get("country")),
            state=location.state,
            **sun_from(reading, sun),
        ),
        "main": normalize_main(reading.main, kelvin),
        "wind": normalize_wind(reading),
        "clouds": normalize_clouds(reading),
        "weather": normalize_conditions(reading.weather),
        "dt": reading.dt or now_epoch(),
        "timezone": "Asia/Kolkata",
    }


def normalize_forecast_entry(reading: WeatherReading, kelvin: bool = True) -> dict:
    dt = reading.dt or 0
    main = normalize_main(reading.main, kelvin)
    return {
        "dt": dt,
        "main": {k: main[k] for k in ("temp", "temp_min", "temp_max", "humidity", "feels_like", "pressure")},
        "weather": normalize_conditions(reading.weather),
        "wind": normalize_wind(reading),
        "clouds": normalize_clouds(reading),
        "rain": reading.rain or None,
        "dt_txt": iso_utc(dt),
    }


def normalize_forecast(readings: List[WeatherReading], location: LocationInfo, lat: float, lon: float,
                       kelvin: bool = True) -> dict:
    return {
        "city": {
            "name": location.name,
            "fullName": location.fullName,
            "country": country_code(location),
            "state": location.state,
            "coordinates": {"lat": lat, "lon": lon},
        },
        "list": [normalize_forecast_entry(r, kelvin) for r in sorted(readings, key=lambda r: r.dt or 0)],
    }


def agro_passthrough(reading: WeatherReading, lat: float, lon: float) -> dict:
    main = reading.main or MainReadings()
    return {
        "coordinates": {"lat": lat, "lon": lon},
        "main": {
            "temp": to_celsius(main.temp, True),
            "humidity": main.humidity,
            "pressure": main.pressure,
        },
        "wind": reading.wind.model_dump() if reading.wind else None,
        "clouds": reading.clouds.model_dump() if reading.clouds else None,
        "rain": reading.rain or None,
        "dt": reading.dt,
    }


# --- soil / ndvi ---

def normalize_soil(polygon_id: str, soil: SoilReading) -> dict:
    return {
        "polygon_id": polygon_id,
        "timestamp": soil.dt,
        "date": iso_utc(soil.dt) if soil.dt is not None else None,
        "surface_temp": kelvin_to_celsius(soil.t0) if soil.t0 else None,
        "soil_temp_10cm": kelvin_to_celsius(soil.t10) if soil.t10 else None,
        "moisture": soil.moisture or None,
        "raw_data": soil.model_dump(exclude_none=True),
    }


def normalize_ndvi(entries: List[NDVIEntry]) -> List[dict]:
    out = []
    for item in sorted(entries, key=lambda e: e.dt or 0):
        data = item.data
        out.append({
            "date": iso_date(item.dt or 0),
            "timestamp": item.dt,
            "ndvi": {
                "min": (data and data.min) or 0,
                "max": (data and data.max) or 0,
                "mean": (data and data.mean) or 0,
                "std": (data and data.std) or 0,
                "num": (data and data.num) or 0,
            },
            "cloud_coverage": item.cl or 0,
        })
    return out


def latest_ndvi_mean(records: List[dict]) -> Optional[float]:
    if not records:
        return None
    return records[-1]["ndvi"]["mean"]


def ndvi_trend(records: List[dict]) -> float:
    if len(records) < 2:
        return 0
    return records[-1]["ndvi"]["mean"] - records[-2]["ndvi"]["mean"]


def health_status(records: List[dict]) -> str:
    mean = latest_ndvi_mean(records)
    if mean is None:
        return "No data"
    for threshold, label in HEALTH_BANDS:
        if mean > threshold:
            return label
    return "Poor"


# --- advisories ---

def irrigation_advice(humidity) -> str:
    if humidity is not None and humidity < 60:
        return "Consider irrigation"
    return "Adequate moisture"


def fertilization_advice(latest_mean) -> str:
    if latest_mean is not None and latest_mean < 0.4:
        return "Consider fertilizer application"
    return "Crop health appears good"


def pest_advice(temp_c, humidity) -> str:
    if temp_c is not None and humidity is not None and temp_c > 25 and humidity > 70:
        return "High risk conditions for pests"
    return "Normal monitoring sufficient"


# --- polygons ---

def polygon_summary(polygon: Polygon) -> dict:
    out = polygon.model_dump(exclude_none=True)
    out["area_hectares"] = area_hectares(polygon.area)
    out["center"] = polygon.center
    return out


def _ring_of(geo_json: dict) -> list:
    geometry = geo_json.get("geometry") if geo_json.get("type") == "Feature" else geo_json
    if not isinstance(geometry, dict) or geometry.get("type") != "Polygon":
        raise InvalidParameter("geo_json must be a Polygon geometry or Feature")
    rings = geometry.get("coordinates")
    if not isinstance(rings, list) or not rings or not isinstance(rings[0], list):
        raise InvalidParameter("geo_json polygon has no coordinate ring")
    return rings[0]


def validate_ring(geo_json: dict) -> dict:
    """Check the outer ring of a farm boundary and close it if it is open.

    Points are ``[lon, lat]``. Returns a new geo_json; the input is not mutated.
    """
    ring = _ring_of(geo_json)
    points = []
    for point in ring:
        if not isinstance(point, (list, tuple)) or len(point) < 2:
            raise InvalidParameter("Each coordinate must be a [lon, lat] pair")
        try:
            lon, lat = float(point[0]), float(point[1])
        except (TypeError, ValueError):
            raise InvalidParameter("Please enter valid numbers for latitude and longitude")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise InvalidParameter("Please enter valid coordinates (Lat: -90 to 90, Lon: -180 to 180)")
        points.append([lon, lat])

    if points and points[0] != points[-1]:
        points.append(list(points[0]))
    if len({tuple(p) for p in points}) < 3:
        raise InvalidParameter("Please add at least 3 coordinate points to create a farm boundary")

    if geo_json.get("type") == "Feature":
        geometry = dict(geo_json["geometry"], coordinates=[points] + geo_json["geometry"]["coordinates"][1:])
        return dict(geo_json, geometry=geometry)
    return dict(geo_json, coordinates=[points] + geo_json["coordinates"][1:])
