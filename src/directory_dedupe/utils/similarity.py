"""String and geographic similarity primitives."""

from __future__ import annotations

import math

from rapidfuzz.distance import Levenshtein

EARTH_RADIUS_KM = 6371.0


def levenshtein(left: str, right: str) -> int:
    """Classic edit distance: insert, delete and substitute each cost 1."""
    return Levenshtein.distance(left or "", right or "")


def string_similarity(left: str, right: str) -> float:
    """Edit-distance ratio in [0, 1]; two empty strings are identical (1.0)."""
    left = left or ""
    right = right or ""
    if not left and not right:
        return 1.0
    return Levenshtein.normalized_similarity(left, right)


def _coordinate(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def geo_distance_km(
    lat1: float | None,
    lon1: float | None,
    lat2: float | None,
    lon2: float | None,
) -> float | None:
    """Great-circle (haversine) distance in kilometres.

    Returns None when any coordinate is missing or not a finite number;
    callers treat that as "distance unknown", never as evidence either way.
    """
    coords = [_coordinate(v) for v in (lat1, lon1, lat2, lon2)]
    if any(c is None for c in coords):
        return None
    phi1, lam1, phi2, lam2 = (math.radians(c) for c in coords)  # type: ignore[arg-type]

    d_phi = phi2 - phi1
    d_lam = lam2 - lam1
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
