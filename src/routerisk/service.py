"""Public entry points, wired from explicitly constructed collaborators."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence

import httpx

from .cache import TTLCache
from .config import Settings
from .correlator import ProximityCorrelator, routes_at_risk_count, unique_risk_count
from .hazards import HazardAggregator, HazardSource, build_hazard_sources
from .lanes import LaneNetworkProvider
from .legs import LegExtractor
from .models import PathResult, Position, RiskPoint, ShippingRoute
from .ports import PortLookup, StaticPortLookup
from .routers import DirectionsRouter, HttpDirectionsRouter
from .searoute import SeaRouteService, Units

log = logging.getLogger(__name__)


class RiskService:
    """Sea routing, leg extraction, hazard aggregation and cached counts.

    The lane network is loaded once, on :meth:`initialize` or on the first
    sea-route call, whichever comes first.
    """

    def __init__(
        self,
        settings: Settings,
        network_provider: LaneNetworkProvider,
        ports: PortLookup,
        road_router: DirectionsRouter,
        rail_router: DirectionsRouter,
        hazard_sources: Iterable[HazardSource],
        clock: Callable[[], float] = time.monotonic,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self.network_provider = network_provider
        self.ports = ports
        self.sea_routes = SeaRouteService(network_provider)
        self.legs = LegExtractor(self.sea_routes, ports, road_router, rail_router, settings.gap_tolerance_km)
        self.correlator = ProximityCorrelator(self.legs)
        self.hazards = HazardAggregator(hazard_sources, timeout_s=settings.hazard_timeout_s)
        self.cache = TTLCache(settings.cache_ttl_s, clock=clock)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> RiskService:
        client = httpx.AsyncClient()
        return cls(
            settings,
            LaneNetworkProvider(settings.lanes_path),
            StaticPortLookup.from_file(settings.ports_path),
            HttpDirectionsRouter(settings.road_router_url, client, timeout=settings.router_timeout_s),
            HttpDirectionsRouter(settings.rail_router_url, client, timeout=settings.router_timeout_s),
            build_hazard_sources(settings, client),
            client=client,
        )

    def initialize(self) -> None:
        self.network_provider.get()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def compute_sea_route(
        self,
        origin: Position,
        destination: Position,
        units: Units = "nautical_miles",
    ) -> PathResult | None:
        return self.sea_routes.route(origin, destination, units=units)

    async def fetch_all_risks(self) -> list[RiskPoint]:
        return await self.hazards.fetch_all()

    async def correlate_route_risks(
        self,
        route: ShippingRoute,
        risks: Sequence[RiskPoint],
        threshold_km: float | None = None,
    ) -> list[RiskPoint]:
        threshold = self.settings.default_threshold_km if threshold_km is None else threshold_km
        return await self.correlator.risks_near_route(route, risks, threshold)

    async def count_nearby_risks(
        self,
        user_id: str,
        routes: Sequence[ShippingRoute],
        risks: Sequence[RiskPoint],
        threshold_km: float | None = None,
    ) -> int:
        """Unique hazards near any of the user's routes (cached per user and threshold)."""
        threshold = self.settings.default_threshold_km if threshold_km is None else threshold_km

        async def compute() -> int:
            risk_map = await self.correlator.risks_near_routes(routes, risks, threshold)
            count = unique_risk_count(risk_map)
            log.info("User %s: %d hazards within threshold", user_id, count)
            return count

        return await self.cache.get_or_compute(("nearby_risks", user_id, threshold), compute)

    async def count_routes_at_risk(
        self,
        user_id: str,
        routes: Sequence[ShippingRoute],
        risks: Sequence[RiskPoint],
        threshold_km: float | None = None,
    ) -> int:
        """Routes of the user with at least one nearby hazard (cached per user and threshold)."""
        threshold = self.settings.default_threshold_km if threshold_km is None else threshold_km

        async def compute() -> int:
            risk_map = await self.correlator.risks_near_routes(routes, risks, threshold)
            count = routes_at_risk_count(risk_map)
            log.info("User %s: %d routes with hazards", user_id, count)
            return count

        return await self.cache.get_or_compute(("routes_at_risk", user_id, threshold), compute)
