# agri_dashboard/aggregator.py
"""
Composite reads: each function fans out to the providers it needs and merges
the answers into one payload.

Independent calls run concurrently through ``gather``. The first failure
aborts the whole composite; no partial payload is ever returned.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, List, Optional

from . import calculations as calc
from .data_sources import UpstreamClient
from .errors import ApiError, MissingParameter, UpstreamError
from .models import LocationInfo, MainReadings

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60
NDVI_DEFAULT_WINDOW = 90 * DAY
DASHBOARD_NDVI_WINDOW = 30 * DAY


def gather(*calls: Callable) -> List:
    """Run calls concurrently; return results in order or raise the first failure."""
    if not calls:
        return []
    pool = ThreadPoolExecutor(max_workers=len(calls))
    try:
        futures = [pool.submit(call) for call in calls]
        for fut in as_completed(futures):
            exc = fut.exception()
            if exc is not None:
                raise exc
        return [fut.result() for fut in futures]
    finally:
        # stragglers finish in the background; their results and errors are discarded
        pool.shutdown(wait=False)


def resolve_location(client: UpstreamClient, lat, lon) -> LocationInfo:
    try:
        resp = client.reverse_geocode(lat, lon)
        if client.settings.geocoder == "opencage":
            return calc.location_from_opencage(resp)
        return calc.location_from_bigdatacloud(resp)
    except (ApiError, ValueError) as e:
        logger.error("Location name fetch error: %s", e)
        return calc.default_location()


def _uses_openweather(client: UpstreamClient) -> bool:
    return client.settings.WEATHER_PROVIDER.lower() == "openweather"


def current_weather(client: UpstreamClient, lat: float, lon: float) -> dict:
    if _uses_openweather(client):
        location, reading = gather(
            lambda: resolve_location(client, lat, lon),
            lambda: client.openweather_current(lat, lon),
        )
        return calc.normalize_weather(reading, location, lat, lon, kelvin=False)

    location, reading, sun = gather(
        lambda: resolve_location(client, lat, lon),
        lambda: client.agro_weather(lat, lon),
        lambda: client.sun_times(lat, lon),
    )
    logger.debug("Raw temperature (Kelvin): %s", reading.main and reading.main.temp)
    return calc.normalize_weather(reading, location, lat, lon, sun=sun, kelvin=True)


def forecast(client: UpstreamClient, lat: float, lon: float) -> dict:
    if _uses_openweather(client):
        location, resp = gather(
            lambda: resolve_location(client, lat, lon),
            lambda: client.openweather_forecast(lat, lon),
        )
        return calc.normalize_forecast(resp.list, location, lat, lon, kelvin=False)

    location, readings = gather(
        lambda: resolve_location(client, lat, lon),
        lambda: client.agro_forecast(lat, lon),
    )
    return calc.normalize_forecast(readings, location, lat, lon, kelvin=True)


def polygon_weather(client: UpstreamClient, polygon_id: str) -> dict:
    polygon = client.get_polygon(polygon_id)
    if not polygon.center:
        raise MissingParameter("Polygon center coordinates not available")
    lon, lat = polygon.center[0], polygon.center[1]
    logger.info("Fetching weather for polygon %s at %s, %s", polygon_id, lat, lon)

    reading, sun = gather(
        lambda: client.agro_weather(lat, lon),
        lambda: client.sun_times(lat, lon),
    )
    main = calc.normalize_main(reading.main, kelvin=True)
    condition = calc.normalize_conditions(reading.weather)[0]
    return {
        "polygon_id": polygon_id,
        "polygon_name": polygon.name,
        "coordinates": {"lat": lat, "lon": lon},
        "area_hectares": calc.area_hectares(polygon.area),
        "weather": dict(main, description=condition["description"], icon=condition["icon"]),
        "wind": calc.normalize_wind(reading),
        "sun": calc.sun_from(reading, sun),
        "timestamp": reading.dt or calc.now_epoch(),
    }


def polygon_ndvi(client: UpstreamClient, polygon_id: str, start: Optional[int] = None,
                 end: Optional[int] = None, now: Optional[int] = None) -> dict:
    now = now if now is not None else calc.now_epoch()
    start = start if start is not None else now - NDVI_DEFAULT_WINDOW
    end = end if end is not None else now

    entries, polygon = gather(
        lambda: client.ndvi_history(polygon_id, start, end),
        lambda: client.get_polygon(polygon_id),
    )
    records = calc.normalize_ndvi(entries)
    return {
        "polygon_info": {
            "id": polygon.id,
            "name": polygon.name,
            "area_hectares": calc.area_hectares(polygon.area),
        },
        "ndvi_data": records,
        "total_records": len(records),
    }


def farm_dashboard(client: UpstreamClient, polygon_id: str, now: Optional[int] = None) -> dict:
    now = now if now is not None else calc.now_epoch()

    polygon = client.get_polygon(polygon_id)
    if not polygon.center:
        raise UpstreamError("agromonitoring", "Polygon center coordinates not available")
    lon, lat = polygon.center[0], polygon.center[1]

    soil, reading, entries = gather(
        lambda: client.soil(polygon_id),
        lambda: client.agro_weather(lat, lon),
        lambda: client.ndvi_history(polygon_id, now - DASHBOARD_NDVI_WINDOW, now),
    )

    main = reading.main or MainReadings()
    soil_view = calc.normalize_soil(polygon_id, soil)
    temperature = calc.to_celsius(main.temp, kelvin=True)
    records = calc.normalize_ndvi(entries)
    latest_mean = calc.latest_ndvi_mean(records)

    recent_ndvi = None
    if records:
        recent_ndvi = {
            "latest_value": latest_mean,
            "date": records[-1]["date"],
            "trend": calc.ndvi_trend(records),
            "total_measurements": len(records),
        }

    return {
        "farm_info": {
            "id": polygon.id,
            "name": polygon.name,
            "area_hectares": calc.area_hectares(polygon.area),
            "center_coordinates": polygon.center,
            "created_at": polygon.created_at,
        },
        "current_conditions": {
            "weather": {
                "temperature": temperature,
                "feels_like": calc.to_celsius(main.feels_like, kelvin=True),
                "humidity": main.humidity or 0,
                "description": calc.normalize_conditions(reading.weather)[0]["description"],
                "wind_speed": calc.normalize_wind(reading)["speed"],
            },
            "soil": {
                "surface_temp": soil_view["surface_temp"],
                "soil_temp_10cm": soil_view["soil_temp_10cm"],
                "moisture": soil_view["moisture"],
                "last_updated": soil_view["date"],
            },
        },
        "crop_health": {
            "recent_ndvi": recent_ndvi,
            "health_status": calc.health_status(records),
        },
        "recommendations": {
            "irrigation": calc.irrigation_advice(main.humidity),
            "fertilization": calc.fertilization_advice(latest_mean),
            "pest_monitoring": calc.pest_advice(temperature if main.temp else None, main.humidity),
        },
        "last_updated": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
