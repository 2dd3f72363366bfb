"""The sea-lane network: immutable segments plus the graph built from them."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field

from .errors import LaneNetworkError
from .geodesy import distance
from .models import Position
from .reader import read_lanes

log = logging.getLogger(__name__)

DEFAULT_LANES_PATH = Path(__file__).parent / "data" / "lanes.geojson"


class LaneSegment(BaseModel):
    """One line of the navigable network, identified by its dataset index."""

    model_config = ConfigDict(frozen=True)

    index: int
    name: str = ""
    coordinates: tuple[Position, ...] = Field(min_length=2)


class LaneNetwork:
    """Read-only sea-lane network.

    Graph nodes are ``(lon, lat)`` tuples. Consecutive vertices of a segment
    are joined by an edge weighted with their great-circle distance in km;
    segments connect to each other only through identical shared vertices.
    """

    def __init__(self, segments: Sequence[LaneSegment]):
        self._segments = tuple(segments)
        self._graph = _build_graph(self._segments)

    @classmethod
    def from_lines(cls, lines: Iterable[tuple[str, Sequence[Position]]]) -> LaneNetwork:
        segments = []
        for i, (name, coords) in enumerate(lines):
            if len(coords) < 2:
                raise LaneNetworkError(f"Lane {i} ({name!r}) has fewer than 2 vertices")
            segments.append(LaneSegment(index=i, name=name, coordinates=tuple(coords)))
        return cls(segments)

    @property
    def segments(self) -> tuple[LaneSegment, ...]:
        return self._segments

    @property
    def graph(self) -> nx.Graph:
        return self._graph

    def __len__(self) -> int:
        return len(self._segments)

    def has_node(self, p: Position) -> bool:
        return self._graph.has_node(p.to_lonlat())


def _build_graph(segments: Sequence[LaneSegment]) -> nx.Graph:
    graph = nx.Graph()
    for seg in segments:
        coords = seg.coordinates
        for a, b in zip(coords, coords[1:]):
            u, v = a.to_lonlat(), b.to_lonlat()
            if u == v:
                graph.add_node(u)
                continue
            graph.add_edge(u, v, weight=distance(a, b), segment=seg.index)
    return nx.freeze(graph)


def load_lane_network(path: str | Path = DEFAULT_LANES_PATH) -> LaneNetwork:
    """Read and build a lane network; any malformed asset raises LaneNetworkError."""
    try:
        lines = read_lanes(path)
    except OSError as exc:
        raise LaneNetworkError(f"Cannot read lane dataset {path}: {exc}") from exc
    network = LaneNetwork.from_lines(lines)
    log.info(
        "Loaded lane network from %s: %d segments, %d vertices",
        path, len(network), network.graph.number_of_nodes(),
    )
    return network


class LaneNetworkProvider:
    """Builds the lane network exactly once, on first use.

    Concurrent first callers block until the single load completes; every
    later call returns the same instance without locking.
    """

    def __init__(self, path: str | Path = DEFAULT_LANES_PATH, *, network: LaneNetwork | None = None):
        self._path = Path(path)
        self._network = network
        self._lock = threading.Lock()

    def get(self) -> LaneNetwork:
        network = self._network
        if network is not None:
            return network
        with self._lock:
            if self._network is None:
                self._network = load_lane_network(self._path)
            return self._network
