"""Normalization and similarity utilities."""

from .normalize import (
    CATEGORIES,
    FieldKind,
    canonical_text,
    normalize,
    normalize_address,
    normalize_category,
    normalize_locality,
    normalize_name,
    normalize_phone,
    normalize_state,
    normalize_url,
)
from .similarity import EARTH_RADIUS_KM, geo_distance_km, levenshtein, string_similarity

__all__ = [
    # Normalize utilities
    "CATEGORIES",
    "FieldKind",
    "canonical_text",
    "normalize",
    "normalize_address",
    "normalize_category",
    "normalize_locality",
    "normalize_name",
    "normalize_phone",
    "normalize_state",
    "normalize_url",
    # Similarity utilities
    "EARTH_RADIUS_KM",
    "geo_distance_km",
    "levenshtein",
    "string_similarity",
]
