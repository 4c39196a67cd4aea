"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROTA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Rota Ágil Route Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level applied by create_app().")
    data_root: Path = Field(default=Path("data"), description="Root directory for stored data files.")
    customers_file: Path = Field(
        default=Path("data/customers.json"),
        description="JSON document holding the customer book.",
    )

    # Distance service (OpenRouteService directions API)
    routing_base_url: str = Field(
        default="https://api.openrouteservice.org",
        description="Base URL of the routing service used for driving distances.",
    )
    routing_api_key: Optional[str] = Field(
        default=None,
        description="API key for the routing service. Without it every distance is great-circle.",
    )
    routing_profile: str = Field(default="driving-car")
    routing_preference: str = Field(
        default="shortest",
        description="Routing preference; 'shortest' favours distance over travel time.",
    )
    routing_timeout_seconds: float = Field(default=8.0, gt=0.0)
    routing_max_retries: int = Field(default=0, ge=0)
    routing_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Route ordering engine
    distance_cache_precision: int = Field(default=5, ge=0, le=10)
    two_opt_max_passes: int = Field(default=50, ge=0)
    distance_network_budget: int = Field(
        default=400,
        ge=0,
        description="Maximum routing service requests per optimization call.",
    )

    # Geocoding
    geocoder_user_agent: str = "RotaAgil/1.0"
    geocoder_min_interval_seconds: float = Field(default=1.0, ge=0.0)
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocoder_default_city: str = "Natal"
    geocoder_default_state: str = "RN"
    geocoder_default_country: str = "Brasil"
    geocoder_bounds_check: bool = True
    google_maps_api_key: Optional[str] = None

    # Generative AI extraction
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_file_model: str = "gemini-3-pro-preview"
    gemini_text_model: str = "gemini-3-flash-preview"
    gemini_timeout_seconds: float = Field(default=60.0, gt=0.0)

    whatsapp_country_code: str = "55"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "customers_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
