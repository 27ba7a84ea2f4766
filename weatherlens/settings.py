from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)

    Nothing here is secret: the National Weather Service API needs no key,
    only a descriptive User-Agent.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Weather Lookup"
    app_version: str = "0.1.0"

    # National Weather Service (api.weather.gov)
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "weatherlens/0.1 (ops@example.com)"
    nws_timeout_s: float = Field(default=8.0, gt=0)
    nws_enabled: bool = True
    # Off = current conditions stay synthetic even when the grid lookup works.
    nws_use_observations: bool = False

    # A stored reading older than this is refetched.
    staleness_minutes: int = Field(default=30, ge=0)

    # ":memory:" keeps the store for the process lifetime only.
    sqlite_path: str = ":memory:"
    seed_sample_data: bool = True

    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


settings = Settings()
