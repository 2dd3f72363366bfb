"""Port lookup: resolve a port number, code or name to a position."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from .models import Position

log = logging.getLogger(__name__)

DEFAULT_PORTS_PATH = Path(__file__).parent / "data" / "ports.json"


class Port(BaseModel):
    """One row of the world-ports table, which keys its fields in camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    port_number: int = Field(alias="portNumber")
    port_name: str = Field(alias="portName")
    country_code: str = Field(default="", alias="countryCode")
    region_name: str = Field(default="", alias="regionName")
    code: str | None = None
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    @property
    def position(self) -> Position:
        return Position.from_latitude_longitude_dict(self.model_dump(include={"latitude", "longitude"}))


class PortLookup(Protocol):
    def resolve(self, ref: str | int) -> Position | None: ...


class StaticPortLookup:
    """Ports from a ``{"ports": {key: Port}}`` JSON table."""

    def __init__(self, ports: list[Port]):
        self._by_number = {p.port_number: p for p in ports}
        self._by_code = {p.code.upper(): p for p in ports if p.code}
        self._by_name = {p.port_name.casefold(): p for p in ports}

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_PORTS_PATH) -> StaticPortLookup:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        ports = [Port.model_validate(p) for p in data.get("ports", {}).values()]
        log.info("Loaded %d ports from %s", len(ports), path)
        return cls(ports)

    def get(self, ref: str | int) -> Port | None:
        if isinstance(ref, int):
            return self._by_number.get(ref)
        ref = ref.strip()
        if ref.isdigit():
            return self._by_number.get(int(ref))
        return self._by_code.get(ref.upper()) or self._by_name.get(ref.casefold())

    def resolve(self, ref: str | int) -> Position | None:
        port = self.get(ref)
        return port.position if port is not None else None
