"""Per-stage leg extraction: the dense polyline each transport actually follows."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from .geodesy import bezier_arc, distance
from .models import LegPoints, Location, Position, RouteExtraction, ShippingRoute, StageGap, Transport, TransportMode
from .ports import PortLookup
from .routers import DirectionsRouter, Place
from .searoute import SeaRouteService

log = logging.getLogger(__name__)

FLIGHT_ARC_STEPS = 50


def _position(loc: Location) -> Position | None:
    """The location's coordinates, or None when unset or out of range."""
    try:
        p = loc.position
    except ValidationError:
        return None
    return None if p.is_unset() else p


class LegExtractor:
    """Produces leg points for each transport mode.

    Road and rail go to the external directions routers, sea legs resolve
    their ports and run through the lane network, flights are synthesized
    as a Bezier arc. Whenever that yields nothing the leg falls back to the
    straight ``[source, destination]`` line and is flagged ``fallback``.
    """

    def __init__(
        self,
        sea_routes: SeaRouteService,
        ports: PortLookup,
        road_router: DirectionsRouter,
        rail_router: DirectionsRouter,
        gap_tolerance_km: float = 50.0,
    ):
        self._sea_routes = sea_routes
        self._ports = ports
        self._road = road_router
        self._rail = rail_router
        self._gap_tolerance_km = gap_tolerance_km

    async def extract(self, transport: Transport) -> LegPoints:
        points: list[Position] = []
        try:
            points = await self._dispatch(transport)
        except Exception as exc:
            log.warning(
                "%s leg %s -> %s extraction failed: %s",
                transport.mode.value, transport.source.name, transport.destination.name, exc,
            )

        if points:
            return LegPoints(points=points)

        fallback = [p for p in (_position(transport.source), _position(transport.destination)) if p is not None]
        log.warning(
            "%s leg %s -> %s using straight-line fallback (%d points)",
            transport.mode.value, transport.source.name, transport.destination.name, len(fallback),
        )
        return LegPoints(points=fallback, fallback=True)

    async def _dispatch(self, transport: Transport) -> list[Position]:
        src, dst = transport.source, transport.destination
        src_pos, dst_pos = _position(src), _position(dst)

        if transport.mode == TransportMode.ROAD:
            return await self._directions(self._road, src_pos, dst_pos, src.name, dst.name, prefer_coords=True)

        if transport.mode == TransportMode.RAIL:
            return await self._directions(self._rail, src_pos, dst_pos, src.name, dst.name, prefer_coords=False)

        if transport.mode == TransportMode.SEA:
            return await self._sea(src, dst)

        if transport.mode == TransportMode.FLIGHT:
            if src_pos is None or dst_pos is None:
                return []
            return bezier_arc(src_pos, dst_pos, steps=FLIGHT_ARC_STEPS)

        return []

    @staticmethod
    async def _directions(
        router: DirectionsRouter,
        src_pos: Position | None,
        dst_pos: Position | None,
        src_name: str,
        dst_name: str,
        prefer_coords: bool,
    ) -> list[Position]:
        by_coords: tuple[Place, Place] | None = (src_pos, dst_pos) if src_pos and dst_pos else None
        by_name: tuple[Place, Place] | None = (src_name, dst_name) if src_name and dst_name else None
        ends = (by_coords or by_name) if prefer_coords else (by_name or by_coords)
        if ends is None:
            return []
        return await router.route(*ends)

    async def _sea(self, src: Location, dst: Location) -> list[Position]:
        origin_ref = src.code or src.name
        dest_ref = dst.code or dst.name
        if not origin_ref or not dest_ref:
            return []
        origin = self._ports.resolve(origin_ref)
        destination = self._ports.resolve(dest_ref)
        if origin is None or destination is None:
            log.warning("Unresolved port(s) for sea leg %r -> %r", origin_ref, dest_ref)
            return []
        result = await asyncio.to_thread(self._sea_routes.route, origin, destination)
        return result.coordinates if result is not None else []

    async def extract_route(self, route: ShippingRoute) -> RouteExtraction:
        """Extract every transport stage concurrently, then check adjacency.

        Stages are keyed by their index in ``route.stages``; holdings have no
        entry. The gap check runs only after all extractions have finished.
        """
        indexed = [(i, s.transport) for i, s in enumerate(route.stages) if s.transport is not None]
        legs = await asyncio.gather(*(self.extract(t) for _, t in indexed))
        extraction = RouteExtraction(legs={i: leg for (i, _), leg in zip(indexed, legs)})
        extraction.gaps.extend(self._gaps(extraction))

        total = sum(len(leg.points) for leg in extraction.legs.values())
        log.info("Route %r has %d points extracted across %d legs", route.name or route.id, total, len(legs))
        for gap in extraction.gaps:
            log.warning(
                "Route %r: stage %d starts %.1f km from the end of stage %d",
                route.name or route.id, gap.stage_index, gap.gap_km, gap.previous_index,
            )
        return extraction

    def _gaps(self, extraction: RouteExtraction) -> list[StageGap]:
        gaps = []
        prev: tuple[int, Position] | None = None
        for i in sorted(extraction.legs):
            points = extraction.legs[i].points
            if not points:
                prev = None
                continue
            if prev is not None:
                gap_km = distance(prev[1], points[0])
                if gap_km > self._gap_tolerance_km:
                    gaps.append(StageGap(stage_index=i, previous_index=prev[0], gap_km=gap_km))
            prev = (i, points[-1])
        return gaps
