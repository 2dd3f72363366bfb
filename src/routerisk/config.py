"""Runtime settings, read from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .lanes import DEFAULT_LANES_PATH
from .ports import DEFAULT_PORTS_PATH

ENV_PREFIX = "ROUTERISK_"

DEFAULT_FEED_PATHS = {
    "weather": "/api/weather/alerts",
    "navigation": "/api/maritime/navigationwarnings",
    "notam": "/api/aviation/notams",
    "traffic": "/api/roads/traffic",
    "jamming": "/api/aviation/gps",
    "train-disruption": "/api/rail/disruption",
}


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = "http://localhost:3000"
    lanes_path: Path = DEFAULT_LANES_PATH
    ports_path: Path = DEFAULT_PORTS_PATH
    road_router_path: str = "/api/roads/navigation"
    rail_router_path: str = "/api/rail/navigation"
    hazard_feed_paths: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_FEED_PATHS))
    hazard_mode: Literal["live", "static"] = "live"
    static_hazards_path: Path | None = None
    hazard_timeout_s: float = Field(default=3.0, gt=0)
    router_timeout_s: float = Field(default=10.0, gt=0)
    cache_ttl_s: float = Field(default=60.0, ge=0)
    default_threshold_km: float = Field(default=20.0, ge=0)
    gap_tolerance_km: float = Field(default=50.0, ge=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def road_router_url(self) -> str:
        return self.base_url.rstrip("/") + self.road_router_path

    @property
    def rail_router_url(self) -> str:
        return self.base_url.rstrip("/") + self.rail_router_path

    def hazard_feed_url(self, name: str) -> str:
        return self.base_url.rstrip("/") + self.hazard_feed_paths[name]

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        """Build settings from ``ROUTERISK_*`` variables; unset ones keep their defaults."""
        load_dotenv(env_file)
        values = {}
        for name in cls.model_fields:
            if name == "hazard_feed_paths":
                continue
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
