"""Road and rail routing through an external directions service.

The service contract is ``POST {origin, destination}`` where each end is a
``{lat, lng}`` object or a free-text place name, answered with
``{polyline, duration, durationInTraffic}``. The polyline is a standard
encoded polyline of ``[lat, lng]`` pairs.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import polyline

from .errors import RouterError
from .models import Position

Place = Position | str


class DirectionsRouter(Protocol):
    async def route(self, origin: Place, destination: Place) -> list[Position]: ...


def format_location(place: Place) -> dict[str, float] | str:
    """Render a place the way the directions service expects it."""
    if isinstance(place, Position):
        return place.to_lat_lng_dict()
    return place


def decode_polyline(encoded: str) -> list[Position]:
    return [Position.from_latlon(pair) for pair in polyline.decode(encoded)]


class HttpDirectionsRouter:
    """Directions client for one travel mode (one service URL)."""

    def __init__(self, url: str, client: httpx.AsyncClient, timeout: float = 10.0):
        self.url = url
        self._client = client
        self._timeout = timeout

    async def route(self, origin: Place, destination: Place) -> list[Position]:
        payload = {"origin": format_location(origin), "destination": format_location(destination)}
        try:
            resp = await self._client.post(self.url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
            data: dict[str, Any] = resp.json()
        except httpx.HTTPError as exc:
            raise RouterError(f"Directions request to {self.url} failed: {exc}") from exc
        except ValueError as exc:
            raise RouterError(f"Directions response from {self.url} is not JSON") from exc

        encoded = data.get("polyline")
        if not encoded:
            raise RouterError(f"Directions response from {self.url} has no polyline")
        return decode_polyline(encoded)
