"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DayPlanner Backend"
    debug: bool = False
    log_level: str = "INFO"
    timezone: str = "UTC"
    database_url: str = "postgresql+psycopg2://dayplanner@localhost:5432/dayplanner"

    # Identity provider (Clerk-issued RS256 session tokens)
    clerk_secret_key: Optional[str] = None
    clerk_jwt_key: Optional[str] = None
    clerk_jwks_url: str = "https://api.clerk.com/v1/jwks"
    clerk_authorized_parties: List[str] = []

    openweather_key: Optional[str] = None
    openweather_url: str = "https://api.openweathermap.org/data/2.5/weather"
    nasa_key: Optional[str] = None
    nasa_apod_url: str = "https://api.nasa.gov/planetary/apod"

    # Any OpenAI-compatible chat completions endpoint; Mistral by default.
    mistral_api_key: Optional[str] = None
    completion_base_url: str = "https://api.mistral.ai/v1"
    completion_model: str = "mistral-large-latest"
    completion_max_tokens: int = 1000
    completion_temperature: float = 0.7
    completion_timeout_seconds: float = 60.0

    http_timeout_seconds: float = 10.0
    cors_allow_origins: List[str] = ["*"]

    opik_enabled: bool = False
    opik_api_key: Optional[str] = None
    opik_project: str = "dayplanner"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
