"""Sea-lane routing and hazard proximity correlation for multi-leg shipments."""

from .correlator import ProximityCorrelator, is_near, stage_rule
from .geodesy import bezier_arc, distance
from .hazards import HazardAggregator
from .lanes import LaneNetwork, LaneNetworkProvider, load_lane_network
from .legs import LegExtractor
from .models import (
    Holding,
    LegPoints,
    Location,
    PathResult,
    Position,
    RiskPoint,
    RiskType,
    ShippingRoute,
    Stage,
    Transport,
    TransportMode,
)
from .searoute import SeaRouteService
from .service import RiskService

__all__ = [
    "HazardAggregator",
    "Holding",
    "LaneNetwork",
    "LaneNetworkProvider",
    "LegExtractor",
    "LegPoints",
    "Location",
    "PathResult",
    "Position",
    "ProximityCorrelator",
    "RiskPoint",
    "RiskService",
    "RiskType",
    "SeaRouteService",
    "ShippingRoute",
    "Stage",
    "Transport",
    "TransportMode",
    "bezier_arc",
    "distance",
    "is_near",
    "load_lane_network",
    "stage_rule",
]
