"""Hazard sources and the aggregator that fans out to all of them.

Each feed endpoint returns its own record shape; the normalizers here map
those records onto :class:`RiskPoint`. Anything beyond that (scraping,
parsing raw text or HTML) belongs to the feed services themselves.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from .config import Settings
from .errors import HazardSourceError
from .models import RiskPoint, RiskType

log = logging.getLogger(__name__)

Normalizer = Callable[[dict[str, Any]], list[RiskPoint]]


class HazardSource(Protocol):
    name: str

    async def fetch(self) -> list[RiskPoint]: ...


def _collect(records: Iterable[dict[str, Any]], build: Callable[[dict[str, Any]], dict[str, Any] | None]) -> list[RiskPoint]:
    risks = []
    for record in records:
        if not isinstance(record, dict):
            log.debug("Skipping non-object hazard record %r", record)
            continue
        try:
            fields = build(record)
            if fields is not None:
                risks.append(RiskPoint(**fields))
        except (KeyError, TypeError, IndexError, ValidationError) as exc:
            log.debug("Skipping malformed hazard record %r: %s", record, exc)
    return risks


def normalize_weather(data: dict[str, Any]) -> list[RiskPoint]:
    return _collect(data.get("alerts") or [], lambda a: {
        "id": str(a["id"]), "lat": a["lat"], "lon": a["lon"], "type": RiskType.WEATHER,
    })


def normalize_navigation(data: dict[str, Any]) -> list[RiskPoint]:
    def build(w):
        coords = w.get("coordinates") or []
        if not coords:
            return None
        # First coordinate stands in for the whole warning area
        return {
            "id": str(w["reference"]),
            "lat": coords[0]["latitude"],
            "lon": coords[0]["longitude"],
            "type": RiskType.NAVIGATION,
        }

    return _collect(data.get("warnings") or [], build)


def normalize_notams(data: dict[str, Any]) -> list[RiskPoint]:
    return _collect(data.get("notams") or [], lambda n: {
        "id": str(n["id"]), "lat": n["latitude"], "lon": n["longitude"], "type": RiskType.NOTAM,
    })


def normalize_traffic(data: dict[str, Any]) -> list[RiskPoint]:
    return _collect(data.get("events") or [], lambda e: {
        "id": str(e.get("guid") or e["title"]),
        "lat": e["latitude"],
        "lon": e["longitude"],
        "type": RiskType.TRAFFIC,
        "category": e.get("category"),
    })


def normalize_jamming(data: dict[str, Any]) -> list[RiskPoint]:
    return _collect(data.get("points") or [], lambda p: {
        "id": f"jamming-{p['id']}",
        "lat": p["lat"],
        "lon": p["lon"],
        "type": RiskType.JAMMING,
        "severity": p.get("percentage"),
    })


def normalize_train_disruptions(data: dict[str, Any]) -> list[RiskPoint]:
    def build(d):
        if d.get("lat") is None or d.get("lon") is None:
            return None
        return {
            "id": f"train-disruption-{d['id']}",
            "lat": d["lat"],
            "lon": d["lon"],
            "type": RiskType.TRAIN_DISRUPTION,
            "severity": d.get("severity"),
        }

    return _collect(data.get("disruptions") or [], build)


NORMALIZERS: dict[str, Normalizer] = {
    RiskType.WEATHER.value: normalize_weather,
    RiskType.NAVIGATION.value: normalize_navigation,
    RiskType.NOTAM.value: normalize_notams,
    RiskType.TRAFFIC.value: normalize_traffic,
    RiskType.JAMMING.value: normalize_jamming,
    RiskType.TRAIN_DISRUPTION.value: normalize_train_disruptions,
}


class HttpHazardSource:
    """Live feed: GET a JSON endpoint and normalize its records."""

    def __init__(self, name: str, url: str, normalize: Normalizer, client: httpx.AsyncClient):
        self.name = name
        self.url = url
        self._normalize = normalize
        self._client = client

    async def fetch(self) -> list[RiskPoint]:
        try:
            resp = await self._client.get(self.url)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise HazardSourceError(f"{self.name} feed request failed: {exc}") from exc
        except ValueError as exc:
            raise HazardSourceError(f"{self.name} feed returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise HazardSourceError(f"{self.name} feed returned {type(data).__name__}, expected an object")
        return self._normalize(data)


class StaticHazardSource:
    """Fallback feed serving a fixed list of hazards."""

    def __init__(self, name: str, risks: Iterable[RiskPoint] = ()):
        self.name = name
        self._risks = list(risks)

    async def fetch(self) -> list[RiskPoint]:
        return list(self._risks)


def load_static_hazards(path: str | Path) -> dict[str, list[RiskPoint]]:
    """Read ``[RiskPoint, ...]`` from JSON and group it by hazard type."""
    with open(path, encoding="utf-8") as f:
        records = json.load(f)
    grouped: dict[str, list[RiskPoint]] = {name: [] for name in NORMALIZERS}
    for record in records:
        risk = RiskPoint.model_validate(record)
        grouped.setdefault(risk.type.value, []).append(risk)
    return grouped


def build_hazard_sources(settings: Settings, client: httpx.AsyncClient) -> list[HazardSource]:
    """One source per feed, live or static according to ``settings.hazard_mode``."""
    if settings.hazard_mode == "static":
        grouped = load_static_hazards(settings.static_hazards_path) if settings.static_hazards_path else {}
        return [StaticHazardSource(name, grouped.get(name, [])) for name in NORMALIZERS]
    return [
        HttpHazardSource(name, settings.hazard_feed_url(name), normalize, client)
        for name, normalize in NORMALIZERS.items()
    ]


class HazardAggregator:
    """Concurrent fetch across all sources, each under its own timeout.

    A source that fails or times out contributes nothing; the batch as a
    whole never fails. Results are concatenated in source order, without
    deduplication.
    """

    def __init__(self, sources: Iterable[HazardSource], timeout_s: float = 3.0):
        self._sources = list(sources)
        self._timeout_s = timeout_s

    async def fetch_all(self) -> list[RiskPoint]:
        results = await asyncio.gather(*(self._fetch_one(s) for s in self._sources))
        risks = [risk for batch in results for risk in batch]
        log.info("Fetched %d hazards from %d sources", len(risks), len(self._sources))
        return risks

    async def _fetch_one(self, source: HazardSource) -> list[RiskPoint]:
        try:
            return await asyncio.wait_for(source.fetch(), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            log.warning("Hazard source %s timed out after %.1fs", source.name, self._timeout_s)
        except Exception as exc:
            log.warning("Hazard source %s failed: %s", source.name, exc)
        return []
