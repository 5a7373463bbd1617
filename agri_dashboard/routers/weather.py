# agri_dashboard/routers/weather.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .. import aggregator
from .. import calculations as calc
from ..data_sources import UpstreamClient, get_client
from ..errors import MissingParameter, wrap_failure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Weather"])


def coordinate(value: Optional[str], default: float) -> float:
    """Parse a query coordinate, falling back to the default location."""
    if value in (None, ""):
        return default
    try:
        return float(value)
    except ValueError:
        return default


@router.get("/weather")
def get_weather(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    client: UpstreamClient = Depends(get_client),
):
    try:
        lat_f = coordinate(lat, client.settings.DEFAULT_LAT)
        lon_f = coordinate(lon, client.settings.DEFAULT_LON)
        logger.info("Weather request for: %s, %s", lat_f, lon_f)
        data = aggregator.current_weather(client, lat_f, lon_f)
    except Exception as e:
        raise wrap_failure("Failed to fetch weather data", e) from e
    logger.info("Weather data transformed and sent for: %s", data["fullName"])
    return data


@router.get("/forecast")
def get_forecast(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    client: UpstreamClient = Depends(get_client),
):
    try:
        lat_f = coordinate(lat, client.settings.DEFAULT_LAT)
        lon_f = coordinate(lon, client.settings.DEFAULT_LON)
        logger.info("Forecast request for: %s, %s", lat_f, lon_f)
        data = aggregator.forecast(client, lat_f, lon_f)
    except Exception as e:
        raise wrap_failure("Failed to fetch forecast data", e) from e
    logger.info("Forecast data transformed - items: %d", len(data["list"]))
    return data


@router.get("/location")
def get_location(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    client: UpstreamClient = Depends(get_client),
):
    if not lat or not lon:
        raise MissingParameter("Latitude and longitude required")
    try:
        lat_f, lon_f = float(lat), float(lon)
    except ValueError:
        raise MissingParameter("Latitude and longitude required")
    try:
        location = aggregator.resolve_location(client, lat_f, lon_f)
    except Exception as e:
        raise wrap_failure("Failed to fetch location", e) from e
    return dict(location.model_dump(), coordinates={"lat": lat_f, "lon": lon_f})


@router.get("/agro-data")
def get_agro_data(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    client: UpstreamClient = Depends(get_client),
):
    try:
        lat_f = coordinate(lat, client.settings.DEFAULT_LAT)
        lon_f = coordinate(lon, client.settings.DEFAULT_LON)
        reading = client.agro_weather(lat_f, lon_f)
    except Exception as e:
        raise wrap_failure("Failed to fetch agro data", e) from e
    return calc.agro_passthrough(reading, lat_f, lon_f)
