"""Match aggregation with the geographic veto.

Runs every strategy over the candidate pool, discards geographically
implausible results, keeps the strongest result per existing record and
ranks what is left into a single DuplicateCheck.
"""

from __future__ import annotations

from collections.abc import Iterable

from directory_dedupe.config import CONFIG, MatchingConfig
from directory_dedupe.logging import get_logger
from directory_dedupe.models import (
    CandidateRecord,
    DuplicateCheck,
    ExistingRecord,
    MatchResult,
    MatchStrategy,
)
from directory_dedupe.utils.similarity import geo_distance_km

from .strategies import ListingFeatures, evaluate_features

logger = get_logger(__name__)


def _id_key(existing_id: str) -> tuple[int, int, str]:
    # Integer ids compare numerically and sort ahead of opaque ids
    text = existing_id.strip()
    if text.lstrip("-").isdigit():
        return (0, int(text), "")
    return (1, 0, text)


def rank_key(result: MatchResult) -> tuple:
    """Ordering: score desc, identifier match first on ties, then lower id."""
    return (
        -result.raw_score,
        result.strategy is not MatchStrategy.EXTERNAL_ID_EXACT,
        _id_key(result.existing_id),
        result.strategy.value,
    )


def best_per_record(results: Iterable[MatchResult]) -> list[MatchResult]:
    """Rank ``results`` and keep only the top result for each existing record."""
    seen: set[str] = set()
    ranked: list[MatchResult] = []
    for result in sorted(results, key=rank_key):
        if result.existing_id in seen:
            continue
        seen.add(result.existing_id)
        ranked.append(result)
    return ranked


def is_vetoed(result: MatchResult, config: MatchingConfig = CONFIG) -> bool:
    """True when the result lies beyond the plausible radius.

    Identifier matches are exempt. Unknown distance never vetoes.
    """
    if result.strategy is MatchStrategy.EXTERNAL_ID_EXACT:
        return False
    if result.distance_km is None:
        return False
    return result.distance_km > config.max_plausible_km


def aggregate(
    candidate: CandidateRecord,
    pool: Iterable[ExistingRecord],
    config: MatchingConfig = CONFIG,
) -> DuplicateCheck:
    """Score ``candidate`` against ``pool`` and rank the surviving matches."""
    cand = ListingFeatures.of(candidate)
    kept: list[MatchResult] = []
    vetoed: list[MatchResult] = []

    for existing in pool:
        distance = geo_distance_km(
            candidate.latitude, candidate.longitude, existing.latitude, existing.longitude
        )
        fired = evaluate_features(cand, ListingFeatures.of(existing), existing.record_id, config)
        for result in fired:
            result = result.model_copy(update={"distance_km": distance})
            if is_vetoed(result, config):
                vetoed.append(result)
            else:
                kept.append(result)

    vetoed = best_per_record(vetoed)
    for result in vetoed:
        logger.info(
            "aggregate.vetoed",
            existing_id=result.existing_id,
            strategy=result.strategy.value,
            raw_score=round(result.raw_score, 4),
            distance_km=round(result.distance_km or 0.0, 1),
            max_plausible_km=config.max_plausible_km,
        )

    if not kept:
        return DuplicateCheck(vetoed=vetoed)

    kept = best_per_record(kept)
    best = kept[0]
    alternates = kept[1 : 1 + max(config.max_alternates, 0)]
    logger.debug(
        "aggregate.best_match",
        existing_id=best.existing_id,
        strategy=best.strategy.value,
        band=best.confidence_band.value,
        alternates=len(alternates),
    )
    return DuplicateCheck(
        has_duplicates=True,
        confidence_band=best.confidence_band,
        best_match=best,
        alternates=alternates,
        vetoed=vetoed,
    )
