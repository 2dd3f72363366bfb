"""Pydantic data models for shipments, hazards and sea routes.

Coordinates are exchanged as :class:`Position`, always ``(lon, lat)`` in
WGS84 degrees. Every external shape (``[lat, lng]`` polylines, ``{lat, lng}``
router payloads, ``{latitude, longitude}`` port records, GeoJSON ``[lon, lat]``)
goes through one of the adapters below.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Position(BaseModel):
    """A WGS84 point in canonical ``(lon, lat)`` order."""

    model_config = ConfigDict(frozen=True)

    lon: float = Field(ge=-180.0, le=180.0)
    lat: float = Field(ge=-90.0, le=90.0)

    @classmethod
    def from_lonlat(cls, pair) -> Position:
        """Build from a GeoJSON-style ``[lon, lat]`` sequence."""
        return cls(lon=float(pair[0]), lat=float(pair[1]))

    @classmethod
    def from_latlon(cls, pair) -> Position:
        """Build from a ``[lat, lon]`` sequence (encoded polylines, Leaflet)."""
        return cls(lon=float(pair[1]), lat=float(pair[0]))

    @classmethod
    def from_latitude_longitude_dict(cls, data: dict[str, Any]) -> Position:
        """Build from a ``{latitude, longitude}`` record (stage locations, port tables)."""
        return cls(lon=float(data["longitude"]), lat=float(data["latitude"]))

    def to_lonlat(self) -> tuple[float, float]:
        return (self.lon, self.lat)

    def to_lat_lng_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lon}

    def is_unset(self) -> bool:
        """``(0, 0)`` marks a location whose coordinates were never filled in."""
        return self.lon == 0 and self.lat == 0


class Location(BaseModel):
    """A named place a transport stage starts or ends at."""

    name: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    code: str | None = None

    @property
    def position(self) -> Position:
        return Position.from_latitude_longitude_dict(self.model_dump(include={"latitude", "longitude"}))


class TransportMode(str, Enum):
    FLIGHT = "flight"
    SEA = "sea"
    ROAD = "road"
    RAIL = "rail"


class Transport(BaseModel):
    """One stage's movement between two locations."""

    source: Location
    destination: Location
    mode: TransportMode
    courier: str | None = None
    additional: str | None = None


class Holding(BaseModel):
    """One stage's dwell at a location."""

    location: str
    duration: str | None = None
    additional: str | None = None


class Stage(BaseModel):
    """Exactly one of ``transport`` or ``holding``."""

    transport: Transport | None = None
    holding: Holding | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> Stage:
        if (self.transport is None) == (self.holding is None):
            raise ValueError("Stage must have exactly one of transport or holding")
        return self


class ShippingRoute(BaseModel):
    """A saved multi-leg shipment."""

    id: str
    name: str = ""
    goods_type: str = ""
    stages: list[Stage] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    feeds: list[str] = Field(default_factory=list)


class RiskType(str, Enum):
    WEATHER = "weather"
    NAVIGATION = "navigation"
    NOTAM = "notam"
    TRAFFIC = "traffic"
    JAMMING = "jamming"
    TRAIN_DISRUPTION = "train-disruption"


class RiskPoint(BaseModel):
    """A normalized, geolocated hazard from any feed."""

    model_config = ConfigDict(frozen=True)

    id: str
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    type: RiskType
    category: str | None = None
    severity: float | None = None

    @property
    def position(self) -> Position:
        return Position(lon=self.lon, lat=self.lat)


class PathResult(BaseModel):
    """A computed sea route from the caller's origin to destination.

    ``snapped`` is False for the degenerate routes that never touched the
    lane network: identical endpoints, or a direct line used because an
    endpoint could not be snapped.
    """

    coordinates: list[Position]
    length: float
    units: Literal["nautical_miles", "kilometers"] = "nautical_miles"
    snapped: bool = True

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {"units": self.units, "length": self.length, "snapped": self.snapped},
            "geometry": {
                "type": "LineString",
                "coordinates": [list(p.to_lonlat()) for p in self.coordinates],
            },
        }


class LegPoints(BaseModel):
    """Dense points for one transport stage.

    ``fallback`` is set when the points are the bare ``[source, destination]``
    line substituted for a failed or unavailable extraction.
    """

    points: list[Position]
    fallback: bool = False


class StageGap(BaseModel):
    """Stage ``stage_index`` starts ``gap_km`` away from where the previous transport ended."""

    stage_index: int
    previous_index: int
    gap_km: float


class RouteExtraction(BaseModel):
    """Per-stage leg points keyed by stage index, plus adjacency warnings."""

    legs: dict[int, LegPoints] = Field(default_factory=dict)
    gaps: list[StageGap] = Field(default_factory=list)

    @property
    def low_confidence(self) -> list[int]:
        return sorted(i for i, leg in self.legs.items() if leg.fallback)


RouteRiskMap = dict[str, list[RiskPoint]]
