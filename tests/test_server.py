import threading

import pytest
from httpx import ASGITransport, AsyncClient

import routerisk.server as server_module
from routerisk.hazards import StaticHazardSource
from routerisk.models import RiskPoint, RiskType
from routerisk.server import GEOJSON_MEDIA_TYPE, create_app

NAV_WARNING = RiskPoint(id="nav-1", lat=45.0, lon=-30.0, type=RiskType.NAVIGATION)
STORM = RiskPoint(id="storm-1", lat=10.0, lon=10.0, type=RiskType.WEATHER)

LDN_NYC = {
    "id": "ldn-nyc",
    "name": "London to New York",
    "goods_type": "containers",
    "stages": [
        {"transport": {
            "source": {"name": "London", "latitude": 51.5, "longitude": 0.0, "code": "GBLON"},
            "destination": {"name": "New York City", "latitude": 40.7, "longitude": -74.0, "code": "USNYC"},
            "mode": "sea",
        }},
        {"holding": {"location": "New York City", "duration": "3d"}},
    ],
}


@pytest.fixture
def app(make_service):
    svc = make_service(sources=[
        StaticHazardSource("navigation", [NAV_WARNING]),
        StaticHazardSource("weather", [STORM]),
    ])
    return create_app(svc)


@pytest.fixture
def client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, client):
        async with client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_uninitialized_service(self):
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.get("/risks")
        assert resp.status_code == 503


@pytest.mark.asyncio
class TestSeaRoute:
    async def test_route_as_geojson(self, client):
        params = {"origin_lon": 0.0, "origin_lat": 51.5, "destination_lon": -74.0, "destination_lat": 40.7}
        async with client:
            resp = await client.get("/sea-route", params=params)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(GEOJSON_MEDIA_TYPE)
        feature = resp.json()
        assert feature["type"] == "Feature"
        coords = feature["geometry"]["coordinates"]
        assert coords[0] == [0.0, 51.5]
        assert coords[-1] == [-74.0, 40.7]
        assert feature["properties"]["units"] == "nautical_miles"
        assert feature["properties"]["snapped"] is True

    async def test_kilometers(self, client):
        params = {
            "origin_lon": 0.0, "origin_lat": 51.5, "destination_lon": -74.0, "destination_lat": 40.7,
            "units": "kilometers",
        }
        async with client:
            resp = await client.get("/sea-route", params=params)
        assert resp.json()["properties"]["units"] == "kilometers"

    async def test_bad_units(self, client):
        params = {"origin_lon": 0, "origin_lat": 0, "destination_lon": 1, "destination_lat": 1, "units": "furlongs"}
        async with client:
            resp = await client.get("/sea-route", params=params)
        assert resp.status_code == 422

    async def test_out_of_range_coordinates(self, client):
        params = {"origin_lon": 0, "origin_lat": 95, "destination_lon": 1, "destination_lat": 1}
        async with client:
            resp = await client.get("/sea-route", params=params)
        assert resp.status_code == 400

    async def test_missing_parameter(self, client):
        async with client:
            resp = await client.get("/sea-route", params={"origin_lon": 0})
        assert resp.status_code == 422

    async def test_between_ports(self, client):
        async with client:
            resp = await client.get("/sea-route/ports", params={"source": "GBLON", "destination": "New York City"})
        assert resp.status_code == 200
        assert resp.json()["geometry"]["coordinates"][-1] == [-74.0, 40.7]

    async def test_disconnected_ports(self, client):
        async with client:
            resp = await client.get("/sea-route/ports", params={"source": "48420", "destination": "USNYC"})
        assert resp.status_code == 404

    async def test_unknown_port(self, client):
        async with client:
            resp = await client.get("/sea-route/ports", params={"source": "Atlantis", "destination": "USNYC"})
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestRisks:
    async def test_all_risks(self, client):
        async with client:
            resp = await client.get("/risks")
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()["risks"]] == ["nav-1", "storm-1"]

    async def test_route_risks(self, client):
        async with client:
            resp = await client.post("/routes/risks", json=LDN_NYC)
        assert resp.status_code == 200
        body = resp.json()
        assert body["routeId"] == "ldn-nyc"
        assert [r["id"] for r in body["risks"]] == ["nav-1"]
        assert body["risks"][0]["type"] == "navigation"

    async def test_invalid_stage(self, client):
        bad = dict(LDN_NYC, stages=[{}])
        async with client:
            resp = await client.post("/routes/risks", json=bad)
        assert resp.status_code == 422

    async def test_risk_summary(self, client):
        other = dict(LDN_NYC, id="second", stages=[LDN_NYC["stages"][1]])
        async with client:
            resp = await client.post("/users/u1/risk-summary", json=[LDN_NYC, other])
        assert resp.status_code == 200
        assert resp.json() == {"savedRoutesCount": 2, "nearbyRisks": 1, "routesAtRisk": 1}

    async def test_negative_threshold_rejected(self, client):
        async with client:
            resp = await client.post("/users/u1/risk-summary", params={"threshold_km": -1}, json=[LDN_NYC])
        assert resp.status_code == 422


@pytest.mark.asyncio
class TestEventLoop:
    async def test_sea_routes_computed_in_worker_thread(self, app):
        svc = app.state.service
        compute = svc.compute_sea_route
        threads = []

        def recording(*args, **kwargs):
            threads.append(threading.get_ident())
            return compute(*args, **kwargs)

        svc.compute_sea_route = recording
        params = {"origin_lon": 0.0, "origin_lat": 51.5, "destination_lon": -74.0, "destination_lat": 40.7}
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/sea-route", params=params)).status_code == 200
            resp = await client.get("/sea-route/ports", params={"source": "GBLON", "destination": "USNYC"})
            assert resp.status_code == 200

        assert len(threads) == 2
        assert threading.get_ident() not in threads


@pytest.mark.asyncio
class TestLifespan:
    async def test_configures_logging_and_loads_lanes(self, make_service, monkeypatch):
        levels = []
        monkeypatch.setattr(server_module, "configure_logging", levels.append)
        svc = make_service(log_level="DEBUG")
        app = create_app(svc)

        async with app.router.lifespan_context(app):
            assert levels == ["DEBUG"]
            assert svc.network_provider.get() is not None
