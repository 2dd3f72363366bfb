"""KMZ/KML reader: extracts sea-lane line strings from KML placemarks.

KMZ is a ZIP archive containing KML. KML coordinates are always WGS84 (EPSG:4326)
in ``longitude,latitude,altitude`` format; altitude is dropped.
"""

from __future__ import annotations

import io
import zipfile
import xml.etree.ElementTree as ET
from typing import BinaryIO

from pydantic import ValidationError

from .errors import LaneNetworkError
from .models import Position

KML_NS = "{http://www.opengis.net/kml/2.2}"


def read_lanes_kmz(file: str | BinaryIO) -> list[tuple[str, list[Position]]]:
    """Read a KMZ (or plain KML) file and return ``(name, coordinates)`` lines.

    Args:
        file: Path to a .kmz/.kml file, or a file-like object containing KMZ/KML bytes.
    """
    data = _read_bytes(file)

    # KMZ is a ZIP; plain KML is XML text
    if _is_zip(data):
        kml_text = _extract_kml_from_kmz(data)
    else:
        kml_text = data.decode("utf-8", errors="replace")

    try:
        root = ET.fromstring(kml_text)
    except ET.ParseError as exc:
        raise LaneNetworkError(f"Unparseable KML: {exc}") from exc
    return _extract_lines(root)


def _read_bytes(file: str | BinaryIO) -> bytes:
    if isinstance(file, (str, bytes)):
        if isinstance(file, str):
            with open(file, "rb") as f:
                return f.read()
        return file
    return file.read()


def _is_zip(data: bytes) -> bool:
    return data[:4] == b"PK\x03\x04"


def _extract_kml_from_kmz(data: bytes) -> str:
    """Extract the first .kml file from a KMZ (ZIP) archive."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        # Prefer doc.kml, fall back to any .kml
        names = zf.namelist()
        kml_name = next((n for n in names if n.lower() == "doc.kml"), None)
        if kml_name is None:
            kml_name = next((n for n in names if n.lower().endswith(".kml")), None)
        if kml_name is None:
            raise LaneNetworkError("No .kml file found in KMZ archive")
        return zf.read(kml_name).decode("utf-8", errors="replace")


def _extract_lines(root: ET.Element) -> list[tuple[str, list[Position]]]:
    """Walk placemarks and collect every LineString they contain."""
    lines: list[tuple[str, list[Position]]] = []
    for placemark in root.iter(f"{KML_NS}Placemark"):
        name_elem = placemark.find(f"{KML_NS}name")
        name = (name_elem.text or "").strip() if name_elem is not None else ""
        for line in placemark.iter(f"{KML_NS}LineString"):
            coords_elem = line.find(f"{KML_NS}coordinates")
            if coords_elem is None or not coords_elem.text:
                continue
            lines.append((name, _parse_coordinates_text(coords_elem.text)))
    return lines


def _parse_coordinates_text(text: str) -> list[Position]:
    """Parse a KML ``<coordinates>`` text block.

    Format: ``lon,lat[,alt] lon,lat[,alt] ...`` (whitespace-separated tuples).
    """
    points: list[Position] = []
    for token in text.strip().split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            points.append(Position(lon=float(parts[0]), lat=float(parts[1])))
        except (ValueError, ValidationError) as exc:
            raise LaneNetworkError(f"Bad KML coordinate {token!r}") from exc
    return points
