"""Great-circle distances and point/line primitives on WGS84 positions."""

from __future__ import annotations

import math
from collections.abc import Sequence

from .models import Position

EARTH_RADIUS_KM = 6371.0
KM_PER_NAUTICAL_MILE = 1.852


def distance(a: Position, b: Position) -> float:
    """Haversine great-circle distance in km."""
    if a == b:
        return 0.0
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlmb = math.radians(b.lon - a.lon)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def km_to_nm(km: float) -> float:
    return km / KM_PER_NAUTICAL_MILE


def path_length(points: Sequence[Position]) -> float:
    """Sum of great-circle distances between consecutive points, in km."""
    total = 0.0
    for i in range(1, len(points)):
        total += distance(points[i - 1], points[i])
    return total


def point_to_segment_distance(p: Position, a: Position, b: Position) -> float:
    """Distance in km from ``p`` to the segment ``a``-``b``.

    The segment is projected onto a local equirectangular plane centred on
    ``p``; the closest point found there is measured back with haversine. This
    is accurate for the short segments found in lane data.
    """
    k = math.cos(math.radians(p.lat))
    ax, ay = (a.lon - p.lon) * k, a.lat - p.lat
    bx, by = (b.lon - p.lon) * k, b.lat - p.lat
    dx, dy = bx - ax, by - ay
    seg_sq = dx * dx + dy * dy
    if seg_sq == 0:
        return distance(p, a)
    t = max(0.0, min(1.0, -(ax * dx + ay * dy) / seg_sq))
    closest = Position(lon=a.lon + t * (b.lon - a.lon), lat=a.lat + t * (b.lat - a.lat))
    return distance(p, closest)


def point_to_line_distance(p: Position, line: Sequence[Position]) -> float:
    """Minimum distance in km from ``p`` to any segment of a polyline."""
    if not line:
        return math.inf
    if len(line) == 1:
        return distance(p, line[0])
    return min(point_to_segment_distance(p, line[i - 1], line[i]) for i in range(1, len(line)))


def nearest_vertex(p: Position, vertices: Sequence[Position]) -> tuple[int, Position] | None:
    """Return ``(index, vertex)`` of the closest vertex; ties keep the first."""
    best: tuple[int, Position] | None = None
    best_dist = math.inf
    for i, v in enumerate(vertices):
        d = distance(p, v)
        if d < best_dist:
            best_dist = d
            best = (i, v)
    return best


def closest_point(points: Sequence[Position], target: Position) -> tuple[int, float] | None:
    """Return ``(index, distance_km)`` of the route point closest to ``target``."""
    found = nearest_vertex(target, points)
    if found is None:
        return None
    return found[0], distance(target, found[1])


def points_within(points: Sequence[Position], target: Position, threshold_km: float) -> list[tuple[int, float]]:
    """All ``(index, distance_km)`` pairs within ``threshold_km`` of ``target``."""
    hits = []
    for i, p in enumerate(points):
        d = distance(p, target)
        if d <= threshold_km:
            hits.append((i, d))
    return hits


def bezier_arc(
    origin: Position,
    destination: Position,
    steps: int = 50,
    curvature: float = 0.2,
) -> list[Position]:
    """Quadratic Bezier arc from ``origin`` to ``destination``.

    The control point sits at the chord midpoint, pushed perpendicular to the
    chord by ``curvature * chord_length`` (degrees), toward the pole of the
    midpoint's hemisphere. This gives the familiar bowed look of a flight on a
    flat map; it is a visual approximation, not a real great-circle track.

    Returns ``steps + 1`` points, the first and last being the endpoints.
    """
    if steps < 1:
        raise ValueError("steps must be >= 1")

    mid_lon = (origin.lon + destination.lon) / 2
    mid_lat = (origin.lat + destination.lat) / 2
    dx = destination.lon - origin.lon
    dy = destination.lat - origin.lat
    chord = math.hypot(dx, dy)

    ctrl_lon, ctrl_lat = mid_lon, mid_lat
    if chord > 0:
        nx, ny = -dy / chord, dx / chord
        poleward = 1.0 if mid_lat >= 0 else -1.0
        if ny * poleward < 0 or (ny == 0 and nx * poleward < 0):
            nx, ny = -nx, -ny
        offset = curvature * chord
        ctrl_lon = max(-180.0, min(180.0, mid_lon + nx * offset))
        ctrl_lat = max(-90.0, min(90.0, mid_lat + ny * offset))

    points = [origin]
    for i in range(1, steps):
        t = i / steps
        u = 1 - t
        lon = u * u * origin.lon + 2 * u * t * ctrl_lon + t * t * destination.lon
        lat = u * u * origin.lat + 2 * u * t * ctrl_lat + t * t * destination.lat
        points.append(Position(lon=lon, lat=lat))
    points.append(destination)
    return points
