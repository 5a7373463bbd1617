# agri_dashboard/main.py
import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .errors import ApiError
from .routers import polygons, weather

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Agriculture Dashboard API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(weather.router)
app.include_router(polygons.router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code < 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s -> 400: invalid request parameters", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request parameters", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


@app.get("/")
def root():
    return {"status": "Backend is running!"}


@app.get("/api/health")
def health(config: Settings = Depends(get_settings)):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "message": "Smart Agriculture Dashboard API with Polygon Support",
        "endpoints": {
            "weather": [
                "GET /api/weather - Location-based weather",
                "GET /api/forecast - Location-based forecast",
                "GET /api/location - Location name lookup",
                "GET /api/agro-data - Raw agronomic weather",
            ],
            "polygons": [
                "POST /api/polygons - Create farm boundary",
                "GET /api/polygons - List all farms",
                "GET /api/soil/{polygon_id} - Soil data for farm",
                "GET /api/polygon-weather/{polygon_id} - Weather for farm",
                "GET /api/polygon-ndvi/{polygon_id} - NDVI data for farm",
                "GET /api/farm-dashboard/{polygon_id} - Complete farm dashboard",
            ],
        },
        "default_location": config.default_location_label,
    }


def run():
    import uvicorn

    logger.info("Smart Agriculture Dashboard API running on port %s", settings.PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
