# agri_dashboard/config.py
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    AGRO_API_KEY: Optional[str] = None
    OPENWEATHER_API_KEY: Optional[str] = None
    OPENCAGE_API_KEY: Optional[str] = None

    # "opencage" or "bigdatacloud"; empty means opencage when its key is set
    GEOCODER: Optional[str] = None
    # "agro" reports Kelvin, "openweather" is requested in metric units
    WEATHER_PROVIDER: str = "agro"

    PORT: int = 5000
    HTTP_TIMEOUT: float = 10.0
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    DEFAULT_LOCATION_NAME: str = "Trichy, Tamil Nadu"
    DEFAULT_LAT: float = 10.7905
    DEFAULT_LON: float = 78.7047

    AGRO_BASE_URL: str = "http://api.agromonitoring.com/agro/1.0"
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"
    SUN_URL: str = "https://api.sunrise-sunset.org/json"
    OPENCAGE_URL: str = "https://api.opencagedata.com/geocode/v1/json"
    BIGDATACLOUD_URL: str = "https://api.bigdatacloud.net/data/reverse-geocode-client"

    @property
    def geocoder(self) -> str:
        if self.GEOCODER:
            return self.GEOCODER.lower()
        return "opencage" if self.OPENCAGE_API_KEY else "bigdatacloud"

    @property
    def default_location_label(self) -> str:
        return f"{self.DEFAULT_LOCATION_NAME} ({self.DEFAULT_LAT}, {self.DEFAULT_LON})"


@lru_cache
def get_settings() -> Settings:
    return Settings()
