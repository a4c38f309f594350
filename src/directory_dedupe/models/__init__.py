"""Pydantic data models."""

from .draft import (
    ChildAction,
    Draft,
    DraftAction,
    DraftStatus,
    FieldSource,
    MergeDecision,
    TERMINAL_STATUSES,
)
from .match import ConfidenceBand, DuplicateCheck, MatchResult, MatchStrategy
from .record import (
    SCALAR_FIELDS,
    CandidateRecord,
    Coordinates,
    ExistingRecord,
    ListingFields,
    Procedure,
    Provider,
    is_empty,
)

__all__ = [
    "CandidateRecord",
    "ExistingRecord",
    "ListingFields",
    "Provider",
    "Procedure",
    "Coordinates",
    "SCALAR_FIELDS",
    "is_empty",
    "MatchStrategy",
    "ConfidenceBand",
    "MatchResult",
    "DuplicateCheck",
    "Draft",
    "DraftStatus",
    "DraftAction",
    "TERMINAL_STATUSES",
    "MergeDecision",
    "FieldSource",
    "ChildAction",
]
