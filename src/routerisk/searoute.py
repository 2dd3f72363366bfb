"""Shortest sea routes over the lane network."""

from __future__ import annotations

import logging
from typing import Literal

import networkx as nx

from .geodesy import km_to_nm, path_length
from .lanes import LaneNetwork, LaneNetworkProvider
from .models import PathResult, Position
from .snapper import snap

log = logging.getLogger(__name__)

Units = Literal["nautical_miles", "kilometers"]


class LanePathfinder:
    """Dijkstra over the lane graph, edge weight = great-circle km."""

    def __init__(self, network: LaneNetwork):
        self._network = network

    def shortest_path(self, source: Position, target: Position) -> list[Position] | None:
        try:
            nodes = nx.dijkstra_path(
                self._network.graph,
                source=source.to_lonlat(),
                target=target.to_lonlat(),
                weight="weight",
            )
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None
        return [Position.from_lonlat(n) for n in nodes]


class SeaRouteService:
    """Routes between two arbitrary points along the sea lanes.

    The returned coordinates always start at the caller's exact origin and
    end at the exact destination; the snapped network vertices sit just
    inside them. ``None`` means the snapped endpoints lie on disconnected
    parts of the network, which is a normal outcome, not an error.
    """

    def __init__(self, provider: LaneNetworkProvider):
        self._provider = provider

    def route(
        self,
        origin: Position,
        destination: Position,
        units: Units = "nautical_miles",
    ) -> PathResult | None:
        if origin == destination:
            return PathResult(coordinates=[origin, destination], length=0.0, units=units, snapped=False)

        network = self._provider.get()
        snapped_origin = snap(network, origin)
        snapped_destination = snap(network, destination)

        if not (snapped_origin.snapped and snapped_destination.snapped):
            log.warning(
                "Sea route %s -> %s could not be snapped to the lane network; using a direct line",
                origin.to_lonlat(), destination.to_lonlat(),
            )
            return self._result([origin, destination], units, snapped=False)

        path = LanePathfinder(network).shortest_path(snapped_origin.position, snapped_destination.position)
        if path is None:
            log.info(
                "No sea route between %s and %s (snapped to disconnected lanes %s / %s)",
                origin.to_lonlat(), destination.to_lonlat(),
                snapped_origin.segment_index, snapped_destination.segment_index,
            )
            return None

        return self._result([origin, *path, destination], units, snapped=True)

    @staticmethod
    def _result(coordinates: list[Position], units: Units, snapped: bool) -> PathResult:
        km = path_length(coordinates)
        length = km_to_nm(km) if units == "nautical_miles" else km
        return PathResult(coordinates=coordinates, length=length, units=units, snapped=snapped)
