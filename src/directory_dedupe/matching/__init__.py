"""Duplicate detection: strategies and aggregation."""

from .aggregator import aggregate, best_per_record, is_vetoed, rank_key
from .strategies import EVALUATORS, ListingFeatures, evaluate, evaluate_pair

__all__ = [
    "EVALUATORS",
    "ListingFeatures",
    "aggregate",
    "best_per_record",
    "evaluate",
    "evaluate_pair",
    "is_vetoed",
    "rank_key",
]
