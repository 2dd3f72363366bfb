"""Sea-lane dataset readers: GeoJSON, KML/KMZ and polyline shapefiles.

Every reader returns ``(name, coordinates)`` lines in WGS84 ``(lon, lat)``;
projected shapefiles are reprojected with pyproj.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, BinaryIO

import shapefile
from pydantic import ValidationError
from pyproj import CRS, Transformer

from .errors import LaneNetworkError
from .kml_reader import read_lanes_kmz
from .models import Position

Line = tuple[str, list[Position]]


def detect_crs(prj_source: str | Path | None) -> tuple[int | None, str | None, bool | None]:
    """Parse CRS from a .prj WKT string or file path.

    Returns (epsg_code, crs_name, is_projected) or (None, None, None) on failure.
    """
    if prj_source is None:
        return None, None, None

    wkt = prj_source if isinstance(prj_source, str) else ""
    if isinstance(prj_source, Path):
        if not prj_source.exists():
            return None, None, None
        wkt = prj_source.read_text()

    if not wkt.strip():
        return None, None, None

    try:
        crs = CRS.from_wkt(wkt)
    except Exception:
        return None, None, None

    return crs.to_epsg(), crs.name, crs.is_projected


def read_lanes(path: str | Path) -> list[Line]:
    """Read a lane dataset, choosing the reader from the file suffix."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".geojson", ".json"):
        with open(path, "rb") as f:
            return read_lanes_geojson(f)
    if suffix in (".kml", ".kmz"):
        return read_lanes_kmz(str(path))
    if suffix in (".shp", ""):
        return read_lanes_shapefile(path)
    raise LaneNetworkError(f"Unsupported lane dataset format: {path.name}")


def read_lanes_geojson(file: BinaryIO | str | dict[str, Any]) -> list[Line]:
    """Read a FeatureCollection of LineString / MultiLineString features.

    Each LineString, and each member of a MultiLineString, becomes one line.
    The feature's ``properties.name`` is used when present.
    """
    if isinstance(file, dict):
        doc = file
    else:
        raw = file if isinstance(file, str) else file.read()
        try:
            doc = json.loads(raw)
        except ValueError as exc:
            raise LaneNetworkError(f"Unparseable GeoJSON: {exc}") from exc

    if not isinstance(doc, dict) or doc.get("type") != "FeatureCollection":
        raise LaneNetworkError("Lane GeoJSON must be a FeatureCollection")

    lines: list[Line] = []
    for i, feature in enumerate(doc.get("features") or []):
        geometry = (feature or {}).get("geometry") or {}
        name = str(((feature or {}).get("properties") or {}).get("name") or f"lane-{i}")
        gtype = geometry.get("type")
        coords = geometry.get("coordinates") or []
        if gtype == "LineString":
            lines.append((name, _to_positions(coords, name)))
        elif gtype == "MultiLineString":
            for part in coords:
                lines.append((name, _to_positions(part, name)))
        else:
            raise LaneNetworkError(f"Feature {name!r} has unsupported geometry {gtype!r}")
    return lines


def read_lanes_shapefile(
    shp_path: str | Path | None = None,
    *,
    shp_file: BinaryIO | None = None,
    shx_file: BinaryIO | None = None,
    dbf_file: BinaryIO | None = None,
    prj_wkt: str | None = None,
) -> list[Line]:
    """Read a POLYLINE shapefile; each shape part becomes one line.

    Supports two modes:
    - File path: pass ``shp_path`` (the .prj is auto-discovered)
    - File objects: pass ``shp_file``, ``shx_file``, ``dbf_file``, and optionally ``prj_wkt``
    """
    try:
        if shp_path is not None:
            shp_path = Path(shp_path)
            sf = shapefile.Reader(str(shp_path))
            prj_path = shp_path.with_suffix(".prj")
            epsg, _, is_projected = detect_crs(prj_path if prj_path.exists() else None)
        elif shp_file is not None:
            sf = shapefile.Reader(shp=shp_file, shx=shx_file, dbf=dbf_file)
            epsg, _, is_projected = detect_crs(prj_wkt)
        else:
            raise ValueError("Provide either shp_path or shp_file")
    except shapefile.ShapefileException as exc:
        raise LaneNetworkError(f"Unreadable shapefile: {exc}") from exc

    upper = sf.shapeTypeName.upper()
    if "POLYLINE" not in upper:
        raise LaneNetworkError(f"Unsupported shape type: {sf.shapeTypeName}. Lanes must be POLYLINE shapes.")

    transformer = None
    if is_projected and epsg is not None:
        transformer = Transformer.from_crs(f"EPSG:{epsg}", "EPSG:4326", always_xy=True)

    fields = [f[0].lower() for f in sf.fields[1:]]  # skip DeletionFlag
    name_idx = fields.index("name") if "name" in fields else None

    lines: list[Line] = []
    for rec_idx, shape_rec in enumerate(sf.iterShapeRecords()):
        shape = shape_rec.shape
        name = str(shape_rec.record[name_idx]) if name_idx is not None else f"lane-{rec_idx}"
        part_starts = list(shape.parts)
        for part_idx, start in enumerate(part_starts):
            end = part_starts[part_idx + 1] if part_idx + 1 < len(part_starts) else len(shape.points)
            xy = shape.points[start:end]
            if transformer is not None:
                lons, lats = transformer.transform([p[0] for p in xy], [p[1] for p in xy])
                xy = list(zip(lons, lats))
            lines.append((name, _to_positions(xy, name)))
    return lines


def _to_positions(coords, name: str) -> list[Position]:
    try:
        return [Position.from_lonlat(c) for c in coords]
    except (TypeError, IndexError, ValueError, ValidationError) as exc:
        raise LaneNetworkError(f"Lane {name!r} has invalid coordinates") from exc
