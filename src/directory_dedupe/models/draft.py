"""Draft review workflow models."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from .match import MatchResult
from .record import CandidateRecord


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DraftStatus(str, Enum):
    """Lifecycle state of a submitted listing."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    MERGED = "merged"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({DraftStatus.APPROVED, DraftStatus.REJECTED, DraftStatus.MERGED})


class DraftAction(str, Enum):
    """Reviewer decisions on a pending draft."""

    APPROVE = "approve"
    REJECT = "reject"
    MERGE = "merge"


class Draft(BaseModel):
    """A submitted, not-yet-canonical listing moving through review."""

    draft_id: str = Field(default_factory=lambda: uuid4().hex)
    status: DraftStatus = DraftStatus.DRAFT
    source: str = "manual"
    payload: CandidateRecord

    # Full match set as computed on entry to review, alternates included
    duplicate_matches: list[MatchResult] = Field(default_factory=list)
    reviewer_notes: str | None = None
    duplicate_clinic_id: str | None = None
    canonical_id: str | None = None

    submitted_by: str | None = None
    reviewed_by: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    reviewed_at: datetime | None = None
    version: int = Field(default=1, ge=1)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def add_note(self, note: str) -> str:
        """Return reviewer notes with ``note`` appended on its own line."""
        if not self.reviewer_notes:
            return note
        return f"{self.reviewer_notes}\n{note}"


class FieldSource(str, Enum):
    """Where a merged scalar value came from."""

    EXISTING = "existing"
    SUBMISSION = "submission"
    EMPTY = "empty"


class ChildAction(BaseModel):
    """What happened to one incoming child entity during a merge."""

    collection: str
    key: str
    action: str = Field(description="updated | appended | collapsed")


class MergeDecision(BaseModel):
    """Field-by-field record of how a submission combined with a listing."""

    existing_id: str
    field_sources: dict[str, FieldSource] = Field(default_factory=dict)
    child_actions: list[ChildAction] = Field(default_factory=list)

    @property
    def filled_fields(self) -> list[str]:
        return [f for f, src in self.field_sources.items() if src is FieldSource.SUBMISSION]
