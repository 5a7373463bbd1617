# agri_dashboard/routers/polygons.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .. import aggregator
from .. import calculations as calc
from ..data_sources import UpstreamClient, get_client
from ..errors import MissingParameter, wrap_failure
from ..models import PolygonIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Polygons"])


def epoch_param(value: Optional[str]) -> Optional[int]:
    """Parse a Unix-time query value; unusable input means "use the default"."""
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        return None


@router.post("/polygons")
def create_polygon(payload: Optional[PolygonIn] = None, client: UpstreamClient = Depends(get_client)):
    payload = payload or PolygonIn()
    try:
        client.require_agro_key()
        if not payload.name or not payload.geo_json:
            raise MissingParameter("Name and geo_json are required")
        geo_json = calc.validate_ring(payload.geo_json)
        logger.info("Creating farm polygon: %s", payload.name)
        polygon = client.create_polygon(payload.name, geo_json)
    except Exception as e:
        raise wrap_failure("Failed to create farm polygon", e) from e
    logger.info("Farm polygon created: %s", polygon.get("id"))
    return {
        "success": True,
        "polygon": polygon,
        "message": f'Farm "{payload.name}" created successfully',
    }


@router.get("/polygons")
def list_polygons(client: UpstreamClient = Depends(get_client)):
    try:
        polygons = [calc.polygon_summary(p) for p in client.list_polygons()]
    except Exception as e:
        raise wrap_failure("Failed to fetch farm polygons", e) from e
    logger.info("Found %d farm polygons", len(polygons))
    return {"success": True, "polygons": polygons, "count": len(polygons)}


@router.get("/soil/{polygon_id}")
def get_soil(polygon_id: str, client: UpstreamClient = Depends(get_client)):
    try:
        soil = calc.normalize_soil(polygon_id, client.soil(polygon_id))
    except Exception as e:
        raise wrap_failure("Failed to fetch soil data", e) from e
    return {"success": True, "soil_data": soil, "message": "Soil conditions for your farm"}


@router.get("/polygon-weather/{polygon_id}")
def get_polygon_weather(polygon_id: str, client: UpstreamClient = Depends(get_client)):
    try:
        weather = aggregator.polygon_weather(client, polygon_id)
    except Exception as e:
        raise wrap_failure("Failed to fetch weather data for farm", e) from e
    return {
        "success": True,
        "weather_data": weather,
        "message": f'Weather conditions for farm "{weather["polygon_name"]}"',
    }


@router.get("/polygon-ndvi/{polygon_id}")
def get_polygon_ndvi(
    polygon_id: str,
    start: Optional[str] = Query(None, description="Unix start time; defaults to 90 days ago"),
    end: Optional[str] = Query(None, description="Unix end time; defaults to now"),
    client: UpstreamClient = Depends(get_client),
):
    try:
        result = aggregator.polygon_ndvi(client, polygon_id, epoch_param(start), epoch_param(end))
    except Exception as e:
        raise wrap_failure("Failed to fetch NDVI data", e) from e
    logger.info("NDVI data retrieved - %d records", result["total_records"])
    return dict(success=True, **result)


@router.get("/farm-dashboard/{polygon_id}")
def get_farm_dashboard(polygon_id: str, client: UpstreamClient = Depends(get_client)):
    logger.info("Building farm dashboard for polygon: %s", polygon_id)
    try:
        dashboard = aggregator.farm_dashboard(client, polygon_id)
    except Exception as e:
        raise wrap_failure("Failed to build farm dashboard", e) from e
    return {"success": True, "dashboard": dashboard}
