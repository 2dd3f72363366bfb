"""Proximity correlation between shipment legs and hazards.

Every transport stage gets a mode-specific distance threshold and set of
relevant hazard types. Matches are advisory: they say a hazard sits near the
leg's sampled points, not that the shipment is affected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from .geodesy import closest_point, distance
from .legs import LegExtractor
from .models import Position, RiskPoint, RiskType, RouteRiskMap, ShippingRoute, TransportMode

log = logging.getLogger(__name__)

FIXED_THRESHOLD_KM = 100.0
TRAFFIC_CATEGORIES = frozenset({"Accidents", "Congestion", "Other"})
JAMMING_MIN_SEVERITY = 50.0


class StageRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    threshold_km: float
    allowed_types: frozenset[RiskType]


def stage_rule(mode: TransportMode, base_threshold_km: float) -> StageRule:
    if mode == TransportMode.ROAD:
        return StageRule(threshold_km=base_threshold_km, allowed_types=frozenset({RiskType.TRAFFIC, RiskType.WEATHER}))
    if mode == TransportMode.RAIL:
        return StageRule(
            threshold_km=base_threshold_km,
            allowed_types=frozenset({RiskType.WEATHER, RiskType.TRAIN_DISRUPTION}),
        )
    if mode == TransportMode.SEA:
        return StageRule(threshold_km=FIXED_THRESHOLD_KM, allowed_types=frozenset({RiskType.NAVIGATION}))
    if mode == TransportMode.FLIGHT:
        return StageRule(threshold_km=FIXED_THRESHOLD_KM, allowed_types=frozenset({RiskType.NOTAM, RiskType.JAMMING}))
    raise ValueError(f"Unknown transport mode: {mode!r}")


def is_near(points: Sequence[Position], hazard: RiskPoint, threshold_km: float) -> bool:
    """True when any point lies within ``threshold_km`` of the hazard.

    Endpoints are checked first. If neither is within the threshold and both
    are farther than twice the span between them, the interior is not scanned.
    That pruning is a heuristic: a leg that loops far out and back can hold
    an interior point near a hazard both endpoints are far from.
    """
    if not points:
        return False

    target = hazard.position
    start_dist = distance(points[0], target)
    end_dist = distance(points[-1], target)
    if start_dist <= threshold_km or end_dist <= threshold_km:
        return True

    span = distance(points[0], points[-1])
    if start_dist > 2 * span and end_dist > 2 * span:
        return False

    return any(distance(p, target) <= threshold_km for p in points[1:-1])


class ProximityCorrelator:
    """Matches hazards to routes, stage by stage."""

    def __init__(self, legs: LegExtractor):
        self._legs = legs

    async def risks_near_route(
        self,
        route: ShippingRoute,
        risks: Sequence[RiskPoint],
        base_threshold_km: float,
    ) -> list[RiskPoint]:
        """Hazards near any stage of ``route``, each reported once per route."""
        extraction = await self._legs.extract_route(route)
        matched: list[RiskPoint] = []
        matched_ids: set[str] = set()

        for index, leg in sorted(extraction.legs.items()):
            transport = route.stages[index].transport
            rule = stage_rule(transport.mode, base_threshold_km)
            jamming_found = False

            for risk in risks:
                if risk.id in matched_ids or risk.type not in rule.allowed_types:
                    continue
                if transport.mode == TransportMode.ROAD and risk.type == RiskType.TRAFFIC:
                    if (risk.category or "") not in TRAFFIC_CATEGORIES:
                        continue
                if transport.mode == TransportMode.FLIGHT and risk.type == RiskType.JAMMING:
                    # At most one jamming cell per flight leg
                    if jamming_found or (risk.severity or 0) <= JAMMING_MIN_SEVERITY:
                        continue

                if not is_near(leg.points, risk, rule.threshold_km):
                    continue

                matched_ids.add(risk.id)
                matched.append(risk)
                if risk.type == RiskType.JAMMING:
                    jamming_found = True
                if log.isEnabledFor(logging.DEBUG):
                    log.debug(
                        "Route %s stage %d (%s%s): %s %r within %.0f km (closest point, km: %s)",
                        route.id, index, transport.mode.value, ", fallback" if leg.fallback else "",
                        risk.type.value, risk.id, rule.threshold_km, closest_point(leg.points, risk.position),
                    )

        if extraction.low_confidence:
            log.info("Route %s: stages %s correlated against fallback lines", route.id, extraction.low_confidence)
        return matched

    async def risks_near_routes(
        self,
        routes: Iterable[ShippingRoute],
        risks: Sequence[RiskPoint],
        base_threshold_km: float,
    ) -> RouteRiskMap:
        """Route id -> nearby hazards; routes without any match are left out."""
        result: RouteRiskMap = {}
        for route in routes:
            found = await self.risks_near_route(route, risks, base_threshold_km)
            if found:
                result[route.id] = found
        return result


def unique_risk_count(risk_map: RouteRiskMap) -> int:
    return len({risk.id for risks in risk_map.values() for risk in risks})


def routes_at_risk_count(risk_map: RouteRiskMap) -> int:
    return sum(1 for risks in risk_map.values() if risks)
