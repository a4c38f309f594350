"""Duplicate-detection result models."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchStrategy(str, Enum):
    """The closed set of signal evaluators, in documented precedence."""

    EXTERNAL_ID_EXACT = "external_id_exact"
    FUZZY_NAME_ADDRESS = "fuzzy_name_address"
    PHONE_NORMALIZED_EQUAL = "phone_normalized_equal"
    WEBSITE_DOMAIN_MATCH = "website_domain_match"
    FUZZY_NAME_LOCATION = "fuzzy_name_location"


class ConfidenceBand(str, Enum):
    """Coarse trustworthiness of a match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchResult(BaseModel):
    """One strategy firing for one (candidate, existing record) pair."""

    model_config = ConfigDict(frozen=True)

    existing_id: str
    strategy: MatchStrategy
    raw_score: float = Field(ge=0.0, le=1.0)
    confidence_band: ConfidenceBand
    match_reason: str
    distance_km: float | None = Field(
        default=None, description="Haversine distance when both sides carry coordinates"
    )

    @field_validator("raw_score", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return max(0.0, min(1.0, float(value)))


class DuplicateCheck(BaseModel):
    """Aggregated outcome of scoring a candidate against a pool."""

    has_duplicates: bool = False
    confidence_band: ConfidenceBand | None = None
    best_match: MatchResult | None = None
    alternates: list[MatchResult] = Field(default_factory=list)
    vetoed: list[MatchResult] = Field(
        default_factory=list, description="Results discarded by the geographic veto"
    )

    @property
    def matches(self) -> list[MatchResult]:
        """Best match followed by alternates."""
        if self.best_match is None:
            return []
        return [self.best_match, *self.alternates]
