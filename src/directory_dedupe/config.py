"""Tunable policy for duplicate detection and draft review.

The geographic veto radius and the strategy floors were chosen while
remediating false merges between listings more than a thousand kilometres
apart. They are policy, not physics: override them through the environment
and re-validate against real data before loosening any of them.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class MatchingConfig:
    # Geographic veto
    max_plausible_km: float = field(default_factory=lambda: _f("DEDUPE_MAX_PLAUSIBLE_KM", 50.0))
    max_alternates: int = field(default_factory=lambda: _i("DEDUPE_MAX_ALTERNATES", 5))

    # FuzzyNameAddress
    name_weight: float = field(default_factory=lambda: _f("DEDUPE_NAME_WEIGHT", 0.6))
    address_weight: float = field(default_factory=lambda: _f("DEDUPE_ADDRESS_WEIGHT", 0.4))
    name_address_floor: float = field(default_factory=lambda: _f("DEDUPE_NAME_ADDRESS_FLOOR", 0.75))
    name_address_high: float = field(default_factory=lambda: _f("DEDUPE_NAME_ADDRESS_HIGH", 0.90))

    # FuzzyNameLocation
    name_location_floor: float = field(default_factory=lambda: _f("DEDUPE_NAME_LOCATION_FLOOR", 0.70))
    name_location_medium: float = field(default_factory=lambda: _f("DEDUPE_NAME_LOCATION_MEDIUM", 0.85))

    # Fixed-score strategies
    phone_score: float = field(default_factory=lambda: _f("DEDUPE_PHONE_SCORE", 0.9))
    website_score: float = field(default_factory=lambda: _f("DEDUPE_WEBSITE_SCORE", 0.7))

    def with_overrides(self, **overrides: float | int) -> MatchingConfig:
        """Return a copy with selected fields replaced."""
        return replace(self, **overrides)


@dataclass(frozen=True)
class ReviewConfig:
    # Fields a draft needs before it may enter the review queue
    queue_fields: tuple[str, ...] = ("name", "address", "city", "state")
    # Fields a draft needs before it may be approved as a new listing
    approval_fields: tuple[str, ...] = ("website", "phone", "email", "external_id", "category")
    # Reported but never blocking
    recommended_fields: tuple[str, ...] = ("zip_code", "latitude", "longitude")


CONFIG = MatchingConfig()
REVIEW_CONFIG = ReviewConfig()
