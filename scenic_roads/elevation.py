"""
elevation.py – fill missing heights and smooth the elevation channel

Points without a z value are looked up in batches through an injected
ElevationLookup; whatever cannot be resolved falls back to 0 m.  The
result is then smoothed with a centred moving average (±10 points) so a
single bad DEM sample does not show up as a 40 % grade.
"""
from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from .http import HttpClient

logger = logging.getLogger("scenic.elevation")

BATCH_SIZE = 1_000        # points per lookup call (API payload limit)
SMOOTHING_WINDOW = 10     # neighbours on each side → up to 21 samples
DEFAULT_ELEVATION = 0


class ElevationLookup(Protocol):
    """Anything that maps (lat, lon) pairs to elevations, same order."""

    def lookup(self, batch: Sequence[Tuple[float, float]]) -> Sequence[Optional[float]]:
        ...


# ────────────────────────────────────────────────────────────────────────────
# Open-Elevation client
# ────────────────────────────────────────────────────────────────────────────
class OpenElevationLookup:
    """ElevationLookup backed by an Open-Elevation compatible HTTP API."""

    ENDPOINT = "/api/v1/lookup"

    def __init__(self, client: HttpClient):
        self.client = client

    def lookup(self, batch: Sequence[Tuple[float, float]]) -> List[Optional[float]]:
        payload = {"locations": [{"latitude": lat, "longitude": lon} for lat, lon in batch]}
        response = self.client.post(self.ENDPOINT, payload) or {}
        results = response.get("results") or []
        elevations: List[Optional[float]] = []
        for i in range(len(batch)):
            res = results[i] if i < len(results) else None
            elevations.append(res.get("elevation") if isinstance(res, dict) else None)
        return elevations


# ────────────────────────────────────────────────────────────────────────────
# Backfill
# ────────────────────────────────────────────────────────────────────────────
def _has_elevation(point: Sequence[float]) -> bool:
    return len(point) > 2 and point[2] is not None


def fetch_elevations(points: Sequence[Sequence[float]], lookup: ElevationLookup) -> List[float]:
    """
    Return one elevation per input point, in input order.

    Points are sent in BATCH_SIZE chunks.  Non-finite coordinates are not
    sent; `sent_to_index` remembers which input slot each sent point
    belongs to.  Anything unresolved stays at DEFAULT_ELEVATION.
    """
    elevations: List[float] = [DEFAULT_ELEVATION] * len(points)

    for batch_no, start in enumerate(range(0, len(points), BATCH_SIZE), start=1):
        locations: List[Tuple[float, float]] = []
        sent_to_index: List[int] = []

        for idx in range(start, min(start + BATCH_SIZE, len(points))):
            try:
                lon, lat = float(points[idx][0]), float(points[idx][1])
            except (TypeError, ValueError):
                continue
            if not (math.isfinite(lat) and math.isfinite(lon)):
                continue
            locations.append((lat, lon))
            sent_to_index.append(idx)

        if not locations:
            continue

        try:
            results = lookup.lookup(locations)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Elevation batch %d failed (%d points) – defaulting to %s m: %s",
                           batch_no, len(locations), DEFAULT_ELEVATION, exc)
            continue

        for sent_pos, value in enumerate(results or ()):
            if sent_pos >= len(sent_to_index) or value is None:
                continue
            elevations[sent_to_index[sent_pos]] = value

    return elevations


def backfill_points(points: Sequence[Sequence[float]], lookup: ElevationLookup) -> List[Any]:
    """
    Give every point of one chain a z value.

    A chain whose points all carry elevation is returned as-is and the
    lookup is never called.
    """
    missing = [i for i, p in enumerate(points) if not _has_elevation(p)]
    if not missing:
        return points

    values = fetch_elevations([points[i] for i in missing], lookup)

    filled = list(points)
    for idx, z in zip(missing, values):
        p = points[idx]
        filled[idx] = [p[0], p[1], z]
    logger.debug("Backfilled %d/%d points", len(missing), len(points))
    return filled


# ────────────────────────────────────────────────────────────────────────────
# Smoothing
# ────────────────────────────────────────────────────────────────────────────
def _round_half_up(value: float, places: str = "0.1") -> float:
    """0.25 → 0.3 and -0.25 → -0.3 (ties away from zero, not to even)."""
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def smooth_points(points: Sequence[Sequence[float]], window: int = SMOOTHING_WINDOW) -> List[Any]:
    """
    Centred moving average of z over ±`window` neighbours, clipped at the
    ends of the chain, rounded half-up to 0.1 m.  x/y are copied untouched.
    Chains shorter than 3 points are returned unchanged.
    """
    n = len(points)
    if n < 3:
        return points

    z = np.array([p[2] for p in points], dtype=float)   # read-only snapshot

    smoothed = []
    for i, p in enumerate(points):
        lo, hi = max(0, i - window), min(n, i + window + 1)
        avg = _round_half_up(float(sum(z[lo:hi])) / (hi - lo))
        smoothed.append([p[0], p[1], avg])
    return smoothed


# ────────────────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────────────────
def enrich_elevation(geometry: Dict[str, Any], elevation_lookup: ElevationLookup) -> Dict[str, Any]:
    """
    Backfill and smooth elevation for a LineString or MultiLineString.

    Returns a new geometry of the same type; every chain keeps its point
    count and position.  Other geometry types come back untouched.
    """
    gtype = geometry.get("type", "")
    coords = geometry.get("coordinates") or []

    if gtype == "LineString":
        new_coords = smooth_points(backfill_points(coords, elevation_lookup))
    elif gtype == "MultiLineString":
        new_coords = [smooth_points(backfill_points(line, elevation_lookup)) for line in coords]
    else:
        logger.debug("Elevation skipped for geometry type %r", gtype)
        return geometry

    return {**geometry, "coordinates": new_coords}
