"""Duplicate-detection strategies.

Five independent signal evaluators, each producing zero or one MatchResult
for a (candidate, existing record) pair. The set is closed: ``MatchStrategy``
names every variant and ``EVALUATORS`` maps each tag to its evaluator, in
documented precedence. Firing order only matters for the identifier
short-circuit; the aggregator re-ranks everything afterwards.

Missing data never raises: a strategy whose inputs are absent simply does
not fire.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from directory_dedupe.config import CONFIG, MatchingConfig
from directory_dedupe.models import (
    CandidateRecord,
    ConfidenceBand,
    ExistingRecord,
    ListingFields,
    MatchResult,
    MatchStrategy,
)
from directory_dedupe.utils.normalize import (
    normalize_address,
    normalize_locality,
    normalize_name,
    normalize_phone,
    normalize_state,
    normalize_url,
)
from directory_dedupe.utils.similarity import string_similarity


@dataclass(frozen=True)
class ListingFeatures:
    """Normalized view of a listing, computed once per record per check."""

    record_id: str | None
    external_id: str
    name: str
    address: str
    phone: str
    domain: str
    city: str
    state: str

    @classmethod
    def of(cls, record: ListingFields) -> ListingFeatures:
        return cls(
            record_id=getattr(record, "record_id", None),
            external_id=(record.external_id or "").strip(),
            name=normalize_name(record.name),
            address=normalize_address(record.address),
            phone=normalize_phone(record.phone),
            domain=normalize_url(record.website),
            city=normalize_locality(record.city),
            state=normalize_state(record.state),
        )


Evaluator = Callable[[ListingFeatures, ListingFeatures, str, MatchingConfig], "MatchResult | None"]


def _result(
    existing_id: str,
    strategy: MatchStrategy,
    score: float,
    band: ConfidenceBand,
    reason: str,
) -> MatchResult:
    return MatchResult(
        existing_id=existing_id,
        strategy=strategy,
        raw_score=max(0.0, min(1.0, score)),
        confidence_band=band,
        match_reason=reason,
    )


def external_id_exact(
    cand: ListingFeatures, other: ListingFeatures, existing_id: str, config: MatchingConfig
) -> MatchResult | None:
    """Authoritative match on the third-party place identifier."""
    if not cand.external_id or cand.external_id != other.external_id:
        return None
    return _result(
        existing_id, MatchStrategy.EXTERNAL_ID_EXACT, 1.0, ConfidenceBand.HIGH, "identifier match"
    )


def fuzzy_name_address(
    cand: ListingFeatures, other: ListingFeatures, existing_id: str, config: MatchingConfig
) -> MatchResult | None:
    """Weighted edit-distance similarity of name and street address."""
    if not (cand.name and other.name and cand.address and other.address):
        return None
    name_score = string_similarity(cand.name, other.name)
    address_score = string_similarity(cand.address, other.address)
    combined = config.name_weight * name_score + config.address_weight * address_score
    if combined < config.name_address_floor:
        return None
    band = ConfidenceBand.HIGH if combined >= config.name_address_high else ConfidenceBand.MEDIUM
    return _result(
        existing_id, MatchStrategy.FUZZY_NAME_ADDRESS, combined, band, "fuzzy name + address match"
    )


def phone_normalized_equal(
    cand: ListingFeatures, other: ListingFeatures, existing_id: str, config: MatchingConfig
) -> MatchResult | None:
    """Same phone number once reduced to digits."""
    if not cand.phone or cand.phone != other.phone:
        return None
    return _result(
        existing_id,
        MatchStrategy.PHONE_NORMALIZED_EQUAL,
        config.phone_score,
        ConfidenceBand.MEDIUM,
        "phone number match",
    )


def website_domain_match(
    cand: ListingFeatures, other: ListingFeatures, existing_id: str, config: MatchingConfig
) -> MatchResult | None:
    """Same website host name."""
    if not cand.domain or cand.domain != other.domain:
        return None
    return _result(
        existing_id,
        MatchStrategy.WEBSITE_DOMAIN_MATCH,
        config.website_score,
        ConfidenceBand.LOW,
        "website domain match",
    )


def fuzzy_name_location(
    cand: ListingFeatures, other: ListingFeatures, existing_id: str, config: MatchingConfig
) -> MatchResult | None:
    """Similar name within the same city and state."""
    if not (cand.city and cand.state and cand.name and other.name):
        return None
    if cand.city != other.city or cand.state != other.state:
        return None
    name_score = string_similarity(cand.name, other.name)
    if name_score < config.name_location_floor:
        return None
    band = ConfidenceBand.MEDIUM if name_score >= config.name_location_medium else ConfidenceBand.LOW
    return _result(
        existing_id,
        MatchStrategy.FUZZY_NAME_LOCATION,
        name_score,
        band,
        "fuzzy name + city/state match",
    )


EVALUATORS: dict[MatchStrategy, Evaluator] = {
    MatchStrategy.EXTERNAL_ID_EXACT: external_id_exact,
    MatchStrategy.FUZZY_NAME_ADDRESS: fuzzy_name_address,
    MatchStrategy.PHONE_NORMALIZED_EQUAL: phone_normalized_equal,
    MatchStrategy.WEBSITE_DOMAIN_MATCH: website_domain_match,
    MatchStrategy.FUZZY_NAME_LOCATION: fuzzy_name_location,
}


def evaluate(
    strategy: MatchStrategy,
    candidate: CandidateRecord,
    existing: ExistingRecord,
    config: MatchingConfig = CONFIG,
) -> MatchResult | None:
    """Run a single strategy over one pair."""
    return EVALUATORS[strategy](
        ListingFeatures.of(candidate), ListingFeatures.of(existing), existing.record_id, config
    )


def evaluate_features(
    cand: ListingFeatures,
    other: ListingFeatures,
    existing_id: str,
    config: MatchingConfig = CONFIG,
) -> list[MatchResult]:
    """Run every strategy over pre-normalized features.

    An identifier match is authoritative and suppresses the rest for the pair.
    """
    identifier = external_id_exact(cand, other, existing_id, config)
    if identifier is not None:
        return [identifier]

    results: list[MatchResult] = []
    for strategy, evaluator in EVALUATORS.items():
        if strategy is MatchStrategy.EXTERNAL_ID_EXACT:
            continue
        result = evaluator(cand, other, existing_id, config)
        if result is not None:
            results.append(result)
    return results


def evaluate_pair(
    candidate: CandidateRecord,
    existing: ExistingRecord,
    config: MatchingConfig = CONFIG,
) -> list[MatchResult]:
    """Run every strategy over one pair and return the results that fired."""
    return evaluate_features(
        ListingFeatures.of(candidate), ListingFeatures.of(existing), existing.record_id, config
    )
