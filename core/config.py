from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Any, Optional

class Settings(BaseSettings):
    """Application settings."""

    # NOAA CO-OPS settings
    coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    coops_params: Dict = {
        "datum": "MLLW",
        "units": "english",
        "time_zone": "gmt",
        "format": "json"
    }
    stations_file: str = "tide_stations.json"

    request: Dict = {
        "timeout": 30,
        "requests_per_minute": 60,
        "batch_size": 20,
        "batch_pause": 10
    }

    # Persistence
    repository_backend: str = "memory"  # "memory" or "sqlite"
    sqlite_path: str = "data/tidewater.db"

    # Game rules
    grid_size: int = 10
    starting_resources: Dict[str, int] = {
        "fish": 100,
        "tourism": 100,
        "energy": 100
    }
    current_reading_max_age_minutes: int = 30
    storm_history_days: int = 7
    storm_prediction_days: int = 1
    storm_surge_threshold: float = 1.3
    storm_duration_hours: int = 6
    event_list_limit: int = 20

    # Scheduler
    scheduler_enabled: bool = True
    tick_interval_minutes: int = 15
    bulletin_interval_hours: int = 6
    prediction_refresh_hour: int = 0
    prediction_refresh_days: int = 3

    # Bulletin text generation
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_timeout: float = 20.0
    anthropic_max_tokens: int = 600

    cache: Dict[str, Any] = {
        "enabled": True,
        "backend": "memory",
        "prefix": "tidewater"
    }

    log_level: str = "INFO"

    def get_cache_ttl(self) -> Dict[str, int]:
        """Get cache TTL values. Station and building catalogs are static."""
        return {
            "tide_stations": 86400,     # 24 hours, station list is static
            "building_types": 86400,    # Seeded once, read-only afterwards
        }

    model_config = SettingsConfigDict(
        env_prefix="tidewater_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
