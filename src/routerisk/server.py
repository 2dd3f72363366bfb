"""FastAPI server for sea routing and route hazard checks."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Settings, configure_logging
from .models import PathResult, Position, ShippingRoute
from .service import RiskService

GEOJSON_MEDIA_TYPE = "application/geo+json"


def create_app(service: RiskService | None = None) -> FastAPI:
    """Build the app around ``service``; without one, it is built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.service is None
        if owned:
            app.state.service = RiskService.from_settings(Settings.from_env())
        configure_logging(app.state.service.settings.log_level)
        app.state.service.initialize()
        try:
            yield
        finally:
            if owned:
                await app.state.service.aclose()

    app = FastAPI(title="Route Risk", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/sea-route")
    async def sea_route(
        origin_lon: float = Query(...),
        origin_lat: float = Query(...),
        destination_lon: float = Query(...),
        destination_lat: float = Query(...),
        units: str = Query("nautical_miles", pattern="^(nautical_miles|kilometers)$"),
        svc: RiskService = Depends(_service),
    ):
        """Shortest sea-lane route between two coordinates, as a GeoJSON Feature."""
        try:
            origin = Position(lon=origin_lon, lat=origin_lat)
            destination = Position(lon=destination_lon, lat=destination_lat)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        result = await asyncio.to_thread(svc.compute_sea_route, origin, destination, units)
        return _route_response(result)

    @app.get("/sea-route/ports")
    async def sea_route_between_ports(
        source: str = Query(..., min_length=1),
        destination: str = Query(..., min_length=1),
        svc: RiskService = Depends(_service),
    ):
        """Route between two ports given by number, code or name."""
        origin = svc.ports.resolve(source)
        dest = svc.ports.resolve(destination)
        if origin is None or dest is None:
            raise HTTPException(status_code=404, detail="One or both ports not found")
        return _route_response(await asyncio.to_thread(svc.compute_sea_route, origin, dest))

    @app.get("/risks")
    async def risks(svc: RiskService = Depends(_service)):
        found = await svc.fetch_all_risks()
        return {"risks": [r.model_dump(mode="json") for r in found]}

    @app.post("/routes/risks")
    async def route_risks(
        route: ShippingRoute,
        threshold_km: float | None = Query(None, ge=0),
        svc: RiskService = Depends(_service),
    ):
        """Hazards near one shipping route."""
        all_risks = await svc.fetch_all_risks()
        found = await svc.correlate_route_risks(route, all_risks, threshold_km)
        return {"routeId": route.id, "risks": [r.model_dump(mode="json") for r in found]}

    @app.post("/users/{user_id}/risk-summary")
    async def risk_summary(
        user_id: str,
        routes: list[ShippingRoute],
        threshold_km: float | None = Query(None, ge=0),
        svc: RiskService = Depends(_service),
    ):
        """Cached counts of nearby hazards and at-risk routes for a user."""
        all_risks = await svc.fetch_all_risks()
        return {
            "savedRoutesCount": len(routes),
            "nearbyRisks": await svc.count_nearby_risks(user_id, routes, all_risks, threshold_km),
            "routesAtRisk": await svc.count_routes_at_risk(user_id, routes, all_risks, threshold_km),
        }

    return app


def _service(request: Request) -> RiskService:
    service = request.app.state.service
    if service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return service


def _route_response(result: PathResult | None) -> JSONResponse:
    if result is None:
        raise HTTPException(status_code=404, detail="No sea route found")
    return JSONResponse(content=result.to_geojson(), media_type=GEOJSON_MEDIA_TYPE)


app = create_app()
