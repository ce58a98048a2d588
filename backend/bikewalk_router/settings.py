from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _repo_data_dir() -> Path:
    # backend/bikewalk_router/settings.py -> <repo>/data
    return Path(__file__).resolve().parents[2] / "data"


def _default_graph_nodes_path() -> str:
    return str(_repo_data_dir() / "graph_nodes.bin")


def _default_service_area_path() -> str:
    return str(_repo_data_dir() / "service_area.geojson")


class Settings(BaseSettings):
    """Service settings, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    graph_nodes_path: str = Field(default_factory=_default_graph_nodes_path, alias="GRAPH_NODES")
    router_engine_module: str = Field(default="", alias="ROUTER_ENGINE_MODULE")
    snap_index_module: str = Field(default="", alias="SNAP_INDEX_MODULE")
    service_area_geojson: str = Field(
        default_factory=_default_service_area_path,
        alias="SERVICE_AREA_GEOJSON",
    )

    out_dir: str = Field(default="out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")

    # Initial route defaults; POST /filter replaces them at runtime.
    default_bike_surface_mask: int = Field(default=0xFFFF, ge=0, le=0xFFFF, alias="DEFAULT_BIKE_SURFACE_MASK")
    default_bike_speed_mps: float = Field(default=6.0, gt=0.0, alias="DEFAULT_BIKE_SPEED_MPS")
    default_walk_speed_mps: float = Field(default=1.5, gt=0.0, alias="DEFAULT_WALK_SPEED_MPS")
    default_ride_to_walk_penalty_s: float = Field(default=5.0, ge=0.0, alias="DEFAULT_RIDE_TO_WALK_PENALTY_S")
    default_walk_to_ride_penalty_s: float = Field(default=3.0, ge=0.0, alias="DEFAULT_WALK_TO_RIDE_PENALTY_S")
    default_surface_penalty_s_per_km: float = Field(
        default=0.0,
        ge=0.0,
        alias="DEFAULT_SURFACE_PENALTY_S_PER_KM",
    )

    @field_validator("default_bike_surface_mask", mode="before")
    @classmethod
    def parse_mask(cls, v: object) -> object:
        # Accept hex literals such as "0xFFFF" from the environment.
        if isinstance(v, str):
            return int(v.strip(), 0)
        return v

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


settings = Settings()
