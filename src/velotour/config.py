"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="VELOTOUR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Velotour Geospatial API"
    api_prefix: str = "/api"
    log_level: Literal["critical", "error", "warning", "info", "debug"] = "info"
    database_url: str = Field(
        default="sqlite+aiosqlite:///data/velotour.sqlite3",
        description="SQLAlchemy async URL of the local persistent store.",
    )
    route_assets_dir: Path = Field(
        default=Path("assets/routes"),
        description="Directory holding bundled GPX tracks named <id>.gpx and <id>-developed.gpx.",
    )

    # Geodata (Overpass) service
    overpass_url: str = Field(
        default="https://overpass-api.de/api/interpreter",
        description="Overpass interpreter endpoint used for surface and POI queries.",
    )
    overpass_timeout_seconds: float = Field(default=30.0, gt=0.0)
    overpass_user_agent: str = Field(default="velotour/0.1 (route planner)")

    # Surface engine
    surface_chunk_size: int = Field(default=500, ge=2, description="Route points per surface query.")
    surface_buffer_km: float = Field(default=0.5, ge=0.0)
    surface_match_threshold_deg: float = Field(
        default=0.0005,
        gt=0.0,
        description="Maximum degree distance between a route point and a way node (about 50 m).",
    )

    # POI loading
    poi_request_timeout_seconds: float = Field(default=25.0, gt=0.0)
    poi_tile_size_deg: float = Field(default=0.1, gt=0.0)
    poi_max_uncached_tiles: int = Field(default=20, ge=1)
    poi_tile_concurrency: int = Field(default=6, ge=1)
    poi_cache_ttl_hours: float = Field(default=24.0, gt=0.0)
    poi_viewport_epsilon_deg: float = Field(default=1e-4, ge=0.0)
    download_protection_seconds: float = Field(default=5.0, ge=0.0)

    # Filtering and clustering
    max_rendered_pois: int = Field(default=200, ge=1)
    filter_update_delay_seconds: float = Field(default=0.1, ge=0.0)
    cluster_max_zoom: int = Field(default=14, ge=0)
    cluster_base_grid_deg: float = Field(default=0.1, gt=0.0)
    cluster_reference_zoom: int = Field(default=8, ge=0)
    hidden_categories: tuple[str, ...] = Field(
        default=("restaurant", "supermarket"),
        description="Categories hidden unless explicitly selected.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8081",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("route_assets_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "hidden_categories", mode="before")
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
