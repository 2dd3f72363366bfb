"""Snap arbitrary positions onto the nearest vertex of the lane network."""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel

from .geodesy import nearest_vertex, point_to_line_distance
from .lanes import LaneNetwork, LaneSegment
from .models import Position

log = logging.getLogger(__name__)


class SnapResult(BaseModel):
    """Where a point landed on the network.

    ``snapped`` is False when no lane could be found and ``position`` is the
    input point unchanged.
    """

    position: Position
    snapped: bool
    segment_index: int | None = None
    offset_km: float = 0.0


def snap(network: LaneNetwork, p: Position) -> SnapResult:
    """Nearest segment by point-to-line distance, then its nearest vertex."""
    best_seg: LaneSegment | None = None
    best_dist = math.inf
    for seg in network.segments:
        d = point_to_line_distance(p, seg.coordinates)
        if d < best_dist:
            best_dist = d
            best_seg = seg

    if best_seg is None:
        log.warning("No lane segment found for %s; using the point unsnapped", p.to_lonlat())
        return SnapResult(position=p, snapped=False)

    vertex = nearest_vertex(p, best_seg.coordinates)
    if vertex is None:
        log.warning("Lane segment %d has no vertices; using %s unsnapped", best_seg.index, p.to_lonlat())
        return SnapResult(position=p, snapped=False)

    return SnapResult(
        position=vertex[1],
        snapped=True,
        segment_index=best_seg.index,
        offset_km=best_dist,
    )
