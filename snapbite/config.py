"""Configuration management for SnapBite using Pydantic."""

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from snapbite.services.geo import DUPLICATE_RADIUS_METERS, PROXIMITY_RADIUS_METERS

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OpenAI Configuration
    openai_api_key: str | None = Field(None, description="OpenAI API key")
    openai_base_url: str | None = Field(
        None, description="Override for the OpenAI API base URL"
    )
    vision_model: str = Field(
        default="gpt-4o", description="Multimodal model used for screenshot analysis"
    )
    vision_max_tokens: int = Field(
        default=500, gt=0, description="Token cap for a single extraction"
    )

    # Geocoding Configuration
    google_maps_api_key: str | None = Field(
        None, description="Google Geocoding API key (primary provider)"
    )
    google_geocoding_url: str = Field(
        default="https://maps.googleapis.com/maps/api/geocode/json",
        description="Google Geocoding endpoint",
    )
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Nominatim search endpoint",
    )
    nominatim_reverse_url: str = Field(
        default="https://nominatim.openstreetmap.org/reverse",
        description="Nominatim reverse geocoding endpoint",
    )
    geocoding_user_agent: str = Field(
        default="SnapBite Restaurant Discovery App",
        description="User-Agent sent to Nominatim (required by its usage policy)",
    )
    nominatim_delay_seconds: float = Field(
        default=1.0, ge=0, description="Delay before each Nominatim request"
    )
    default_latitude: float = Field(
        default=37.7749, ge=-90, le=90, description="Fallback latitude"
    )
    default_longitude: float = Field(
        default=-122.4194, ge=-180, le=180, description="Fallback longitude"
    )
    default_jitter_degrees: float = Field(
        default=0.05, ge=0, description="Max random offset applied to the fallback"
    )

    # Network Configuration
    request_timeout_seconds: float = Field(
        default=20.0, gt=0, description="Timeout for each external call"
    )

    # Restaurant Rules
    duplicate_radius_meters: float = Field(
        default=DUPLICATE_RADIUS_METERS,
        gt=0,
        description="Restaurants closer than this are treated as duplicates",
    )
    proximity_radius_meters: float = Field(
        default=PROXIMITY_RADIUS_METERS,
        gt=0,
        description="Radius for nearby-restaurant alerts",
    )

    # Storage Configuration
    storage_path: Path | None = Field(
        None, description="JSON file for the restaurant list (in-memory if unset)"
    )

    # Server Configuration
    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=8080, description="Server port")
    server_url: str = Field(
        default="http://localhost:8080",
        description="Server URL for CLI to connect to API",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    def has_google_geocoding(self) -> bool:
        """Check if the primary geocoding provider is configured."""
        return bool(self.google_maps_api_key)

    def model_post_init(self, __context) -> None:
        """Validate configuration after initialization."""
        if not self.openai_api_key:
            logger.warning("OPENAI_API_KEY not set - screenshot analysis disabled")

        if not self.google_maps_api_key:
            logger.info("GOOGLE_MAPS_API_KEY not set - geocoding uses Nominatim only")


# Global config instance
config: Config | None = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def setup_logging(cfg: Config | None = None) -> None:
    """Configure logging for the application."""
    if cfg is None:
        cfg = get_config()

    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
