"""
geometry.py – stitch raw road fragments into continuous chains
────────────────────────────────────────────────────────────────────
GIS layers usually deliver a road as dozens of disjoint LineStrings in
no particular order or direction.  We rebuild it greedily:

  ① seed an open chain with the first segment left in the pool,
  ② scan the pool in order and glue the first segment whose endpoint
    touches either end of the chain (reversing it if needed),
  ③ restart the scan after every merge; close the chain when a full
    scan finds nothing.

Pool order decides the outcome at forks, so the input order is kept.

Public symbols
--------------
TOLERANCE                  – squared planar distance for "same endpoint"
optimize_geometry(...)     – raw (Multi)LineString → MultiLineString
build_chains(...)          – list of segments → list of chains
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

log = logging.getLogger("scenic.geometry")

Point = Union[Tuple[float, float], Tuple[float, float, float], List[float]]
Segment = Sequence[Point]
Chain = List[Point]

# Squared distance on raw lon/lat degrees (roughly 10–20 m at mid latitudes).
TOLERANCE = 0.00005


# ────────────────────────────────────────────────────────────────────────────
# internal helpers
# ────────────────────────────────────────────────────────────────────────────
def _dist_sq(p1: Point, p2: Point) -> float:
    return (p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2


def _extract_segments(geometry: Dict[str, Any]) -> List[Segment]:
    if geometry.get("type") == "LineString":
        return [geometry["coordinates"]]
    return list(geometry["coordinates"])


def try_merge(chain: Chain, segment: Segment) -> Optional[Chain]:
    """
    Attach `segment` to either end of `chain` and return the new chain.

    Cases are tried in a fixed order and the first match wins:
    end→start, end→end (reversed), start←end, start←start (reversed).
    The shared join point is kept only once.  Returns None if the
    segment touches neither end.
    """
    chain_start, chain_end = chain[0], chain[-1]
    seg_start, seg_end = segment[0], segment[-1]

    if _dist_sq(chain_end, seg_start) < TOLERANCE:
        return chain + list(segment[1:])

    if _dist_sq(chain_end, seg_end) < TOLERANCE:
        return chain + list(reversed(segment[:-1]))

    if _dist_sq(chain_start, seg_end) < TOLERANCE:
        return list(segment[:-1]) + chain

    if _dist_sq(chain_start, seg_start) < TOLERANCE:
        return list(reversed(segment[1:])) + chain

    return None


# ────────────────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────────────────
def build_chains(segments: Sequence[Segment]) -> List[Chain]:
    """Partition `segments` into the minimal greedy set of continuous chains."""
    pool: List[Segment] = list(segments)
    chains: List[Chain] = []

    while pool:
        current: Chain = list(pool.pop(0))

        extended = True
        while extended:
            extended = False
            for idx, candidate in enumerate(pool):
                merged = try_merge(current, candidate)
                if merged is not None:
                    current = merged
                    del pool[idx]
                    extended = True
                    break

        chains.append(current)

    return chains


def optimize_geometry(geometry: Dict[str, Any]) -> Dict[str, Any]:
    """
    Organise a raw LineString / MultiLineString into ordered chains.

    Always returns a GeoJSON-style MultiLineString; a road that stitches
    into one piece is a one-element MultiLineString.
    """
    segments = _extract_segments(geometry)
    chains = build_chains(segments)
    log.debug("Stitched %d segments into %d chains", len(segments), len(chains))
    return {"type": "MultiLineString", "coordinates": chains}
