"""Service-level tests: wiring, cached counts and a full London to New York check."""

import pytest

from routerisk.config import Settings
from routerisk.hazards import StaticHazardSource
from routerisk.lanes import LaneNetworkProvider
from routerisk.models import Location, Position, RiskPoint, RiskType, ShippingRoute, Stage, Transport
from routerisk.service import RiskService


def P(lon, lat):
    return Position(lon=lon, lat=lat)


def sea_route(route_id="ldn-nyc"):
    return ShippingRoute(
        id=route_id,
        name="London to New York",
        goods_type="containers",
        stages=[Stage(transport=Transport(
            source=Location(name="London", latitude=51.5, longitude=0.0, code="GBLON"),
            destination=Location(name="New York City", latitude=40.7, longitude=-74.0, code="USNYC"),
            mode="sea",
        ))],
    )


MID_ATLANTIC = RiskPoint(id="nav-1", lat=45.0, lon=-30.0, type=RiskType.NAVIGATION)
GULF_OF_GUINEA = RiskPoint(id="nav-2", lat=0.0, lon=0.0, type=RiskType.NAVIGATION)


@pytest.mark.asyncio
class TestEndToEnd:
    async def test_london_new_york_sea_route_hazards(self, make_service):
        svc = make_service(sources=[StaticHazardSource("navigation", [MID_ATLANTIC, GULF_OF_GUINEA])])

        risks = await svc.fetch_all_risks()
        found = await svc.correlate_route_risks(sea_route(), risks)

        assert [r.id for r in found] == ["nav-1"]

    async def test_sea_route_units(self, make_service):
        svc = make_service()
        nm = svc.compute_sea_route(P(0.0, 51.5), P(-74.0, 40.7))
        km = svc.compute_sea_route(P(0.0, 51.5), P(-74.0, 40.7), units="kilometers")
        assert km.length == pytest.approx(nm.length * 1.852)

    async def test_threshold_defaults_to_settings(self, make_service, fake_router):
        road = fake_router(points=[P(2.35, 48.85), P(4.84, 45.76)])
        svc = make_service(road=road, default_threshold_km=5)
        route = ShippingRoute(id="r", stages=[Stage(transport=Transport(
            source=Location(name="Paris", latitude=48.85, longitude=2.35),
            destination=Location(name="Lyon", latitude=45.76, longitude=4.84),
            mode="road",
        ))])
        # ~11 km from Lyon
        rain = RiskPoint(id="rain", lat=45.86, lon=4.84, type=RiskType.WEATHER)

        assert await svc.correlate_route_risks(route, [rain]) == []
        assert len(await svc.correlate_route_risks(route, [rain], threshold_km=20)) == 1


@pytest.mark.asyncio
class TestCachedCounts:
    async def test_nearby_risks_cached_within_ttl(self, make_service, clock):
        svc = make_service(cache_ttl_s=60)
        routes = [sea_route()]

        assert await svc.count_nearby_risks("u1", routes, [MID_ATLANTIC], 20) == 1
        clock.advance(30)
        # hazards changed, but the cached count is still served
        assert await svc.count_nearby_risks("u1", routes, [], 20) == 1

    async def test_nearby_risks_recomputed_after_ttl(self, make_service, clock):
        svc = make_service(cache_ttl_s=60)
        routes = [sea_route()]

        await svc.count_nearby_risks("u1", routes, [MID_ATLANTIC], 20)
        clock.advance(60)
        assert await svc.count_nearby_risks("u1", routes, [], 20) == 0

    async def test_cache_keyed_by_user_and_threshold(self, make_service):
        svc = make_service()
        routes = [sea_route()]

        assert await svc.count_nearby_risks("u1", routes, [MID_ATLANTIC], 20) == 1
        assert await svc.count_nearby_risks("u2", routes, [], 20) == 0
        assert await svc.count_nearby_risks("u1", routes, [], 30) == 0

    async def test_routes_at_risk(self, make_service):
        svc = make_service()
        routes = [sea_route("a"), sea_route("b"), ShippingRoute(id="empty")]

        assert await svc.count_routes_at_risk("u1", routes, [MID_ATLANTIC]) == 2
        assert await svc.count_nearby_risks("u1", routes, [MID_ATLANTIC]) == 1

    async def test_counts_have_separate_entries(self, make_service):
        svc = make_service()
        await svc.count_routes_at_risk("u1", [sea_route()], [MID_ATLANTIC], 20)
        await svc.count_nearby_risks("u1", [sea_route()], [MID_ATLANTIC], 20)
        assert len(svc.cache) == 2


class TestWiring:
    def test_initialize_loads_lanes(self, lane_network, ports, fake_router):
        provider = LaneNetworkProvider(network=lane_network)
        svc = RiskService(Settings(), provider, ports, fake_router(), fake_router(), [])
        svc.initialize()
        assert svc.network_provider.get() is lane_network

    @pytest.mark.asyncio
    async def test_from_settings_static_mode(self, tmp_path):
        hazards = tmp_path / "hazards.json"
        hazards.write_text('[{"id": "n1", "lat": 1, "lon": 1, "type": "notam"}]')
        svc = RiskService.from_settings(Settings(hazard_mode="static", static_hazards_path=hazards))
        assert svc.ports.resolve("GBLON") == P(0.0, 51.5)
        assert await svc.fetch_all_risks() == [RiskPoint(id="n1", lat=1, lon=1, type=RiskType.NOTAM)]
        await svc.aclose()
