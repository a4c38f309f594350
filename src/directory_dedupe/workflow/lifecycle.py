"""Draft review lifecycle.

    draft -> pending_review -> approved | rejected | merged

Every reviewer transition is a compare-and-set on ``pending_review``: of two
concurrent reviewers exactly one wins, and only the winner touches the
record store. Terminal drafts never change again.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from directory_dedupe.config import CONFIG, REVIEW_CONFIG, MatchingConfig, ReviewConfig
from directory_dedupe.exceptions import ConflictError, NotFoundError, ValidationError
from directory_dedupe.logging import get_logger
from directory_dedupe.matching import aggregate
from directory_dedupe.merge import MergeResolver
from directory_dedupe.models import (
    CandidateRecord,
    Draft,
    DraftAction,
    DraftStatus,
    DuplicateCheck,
)
from directory_dedupe.ports import DraftStore, GeoProvider, PoolHints, RecordStore
from directory_dedupe.utils.normalize import normalize_category

logger = get_logger(__name__)

# Changing any of these invalidates previously geocoded coordinates
LOCATION_FIELDS = ("address", "city", "state", "zip_code")


def _now() -> datetime:
    return datetime.now(UTC)


def _invalid_fields(exc: PydanticValidationError) -> list[str]:
    fields: list[str] = []
    for err in exc.errors():
        loc = err.get("loc") or ("payload",)
        if str(loc[0]) not in fields:
            fields.append(str(loc[0]))
    return fields


class ApprovalReport(BaseModel):
    """Fields a draft still lacks before it can become a listing."""

    draft_id: str
    status: DraftStatus
    missing_required: list[str] = Field(default_factory=list)
    missing_recommended: list[str] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.missing_required


class DraftLifecycle:
    """State machine over drafts, backed by a DraftStore and a RecordStore."""

    def __init__(
        self,
        drafts: DraftStore,
        records: RecordStore,
        config: MatchingConfig | None = None,
        geo: GeoProvider | None = None,
        *,
        review: ReviewConfig | None = None,
        resolver: MergeResolver | None = None,
    ) -> None:
        self.drafts = drafts
        self.records = records
        self.config = config or CONFIG
        self.geo = geo
        self.review = review or REVIEW_CONFIG
        self.resolver = resolver or MergeResolver()
        self._actions: dict[DraftAction, Callable[[Draft, Mapping[str, Any]], Draft]] = {
            DraftAction.APPROVE: self._approve,
            DraftAction.REJECT: self._reject,
            DraftAction.MERGE: self._merge,
        }

    # ---------------------------- Matching ---------------------------

    def enrich(self, candidate: CandidateRecord) -> CandidateRecord:
        """Fill missing coordinates from the geo provider.

        Provider failures are logged and leave the candidate untouched; the
        veto then simply has no distance to work with.
        """
        if self.geo is None or candidate.has_coordinates:
            return candidate
        try:
            coords = self.geo.lookup_coordinates(candidate)
        except Exception as e:
            logger.warning("geocode.failed", error=str(e), error_type=type(e).__name__)
            return candidate
        if coords is None:
            return candidate
        return candidate.with_coordinates(coords.latitude, coords.longitude)

    def check_duplicates(self, candidate: CandidateRecord) -> tuple[CandidateRecord, DuplicateCheck]:
        """Enrich ``candidate`` and score it against the candidate pool."""
        candidate = self.enrich(candidate)
        pool = self.records.list_candidate_pool(PoolHints.for_record(candidate))
        return candidate, aggregate(candidate, pool, self.config)

    def _enter_review(self, draft: Draft) -> Draft:
        payload, check = self.check_duplicates(draft.payload)
        return draft.model_copy(
            update={
                "payload": payload,
                "status": DraftStatus.PENDING_REVIEW,
                "duplicate_matches": check.matches,
            }
        )

    # ------------------------- Draft editing -------------------------

    def _require(self, draft_id: str) -> Draft:
        draft = self.drafts.get(draft_id)
        if draft is None:
            raise NotFoundError("draft", draft_id)
        return draft

    def _is_complete(self, candidate: CandidateRecord) -> bool:
        return not candidate.missing(self.review.queue_fields)

    def create_draft(
        self,
        candidate: CandidateRecord | Mapping[str, Any],
        source: str = "manual",
        submitted_by: str | None = None,
    ) -> Draft:
        """Store a new draft; complete drafts go straight to review with matches attached."""
        if not isinstance(candidate, CandidateRecord):
            candidate = CandidateRecord.model_validate(candidate)

        draft = Draft(payload=candidate, source=source, submitted_by=submitted_by)
        if self._is_complete(candidate):
            draft = self._enter_review(draft)

        self.drafts.add(draft)
        logger.info(
            "draft.created",
            draft_id=draft.draft_id,
            status=draft.status.value,
            source=source,
            matches=len(draft.duplicate_matches),
        )
        return draft

    def submit(self, draft_id: str) -> Draft:
        """Move a completed draft into the review queue."""
        draft = self._require(draft_id)
        if draft.status is not DraftStatus.DRAFT:
            raise ConflictError(draft_id, DraftStatus.DRAFT.value, draft.status.value)

        missing = draft.payload.missing(self.review.queue_fields)
        if missing:
            raise ValidationError("Draft is missing required fields", missing)

        updated = self._enter_review(draft)
        updated = updated.model_copy(update={"updated_at": _now(), "version": draft.version + 1})
        self._commit(updated, DraftStatus.DRAFT)
        logger.info("draft.submitted", draft_id=draft_id, matches=len(updated.duplicate_matches))
        return updated

    def update_draft(self, draft_id: str, changes: Mapping[str, Any]) -> Draft:
        """Edit a non-terminal draft and recompute its duplicate matches.

        A draft that becomes complete is promoted to review. A queued draft
        never moves back: an edit that would drop a required field is refused.
        """
        draft = self._require(draft_id)
        if draft.is_terminal:
            raise ConflictError(draft_id, "draft or pending_review", draft.status.value)

        values = draft.payload.model_dump()
        values.update(changes)
        moved = any(f in changes for f in LOCATION_FIELDS)
        if moved and "latitude" not in changes and "longitude" not in changes:
            values["latitude"] = None
            values["longitude"] = None

        try:
            payload = CandidateRecord.model_validate(values)
        except PydanticValidationError as e:
            raise ValidationError("Invalid draft fields", _invalid_fields(e)) from e

        missing = payload.missing(self.review.queue_fields)
        if missing and draft.status is DraftStatus.PENDING_REVIEW:
            raise ValidationError("Draft in review cannot lose required fields", missing)

        updated = draft.model_copy(
            update={"payload": payload, "updated_at": _now(), "version": draft.version + 1}
        )
        if not missing:
            updated = self._enter_review(updated)

        self._commit(updated, draft.status)
        logger.info(
            "draft.updated",
            draft_id=draft_id,
            fields=sorted(changes),
            status=updated.status.value,
            matches=len(updated.duplicate_matches),
        )
        return updated

    # ------------------------- Reviewer actions ----------------------

    def transition(
        self,
        draft_id: str,
        action: DraftAction | str,
        params: Mapping[str, Any] | None = None,
    ) -> Draft:
        """
        Apply a reviewer decision to a pending draft.

        Args:
            draft_id: Draft to act on
            action: approve, reject or merge
            params: ``reviewed_by`` for every action, ``notes`` for reject,
                ``existing_id`` for merge

        Returns:
            The draft in its terminal state

        Raises:
            ValidationError: required fields or parameters are missing
            ConflictError: the draft is not pending review (or another reviewer won)
            NotFoundError: the draft or the merge target does not exist
        """
        params = params or {}
        try:
            action = DraftAction(action)
        except ValueError:
            raise ValidationError(f"Unknown action {action!r}") from None

        draft = self._require(draft_id)
        if draft.status is not DraftStatus.PENDING_REVIEW:
            raise ConflictError(draft_id, DraftStatus.PENDING_REVIEW.value, draft.status.value)

        result = self._actions[action](draft, params)
        logger.info(
            "draft.transition",
            draft_id=draft_id,
            action=action.value,
            status=result.status.value,
            reviewed_by=result.reviewed_by,
        )
        return result

    def _terminal(self, draft: Draft, status: DraftStatus, params: Mapping[str, Any], **extra: Any) -> Draft:
        now = _now()
        return draft.model_copy(
            update={
                "status": status,
                "reviewed_by": params.get("reviewed_by"),
                "reviewed_at": now,
                "updated_at": now,
                "version": draft.version + 1,
                **extra,
            }
        )

    def _commit(self, updated: Draft, expected: DraftStatus) -> None:
        if self.drafts.compare_and_set(updated, expected):
            return
        current = self.drafts.get(updated.draft_id)
        if current is None:
            raise NotFoundError("draft", updated.draft_id)
        logger.warning(
            "draft.conflict",
            draft_id=updated.draft_id,
            expected=expected.value,
            actual=current.status.value,
        )
        raise ConflictError(updated.draft_id, expected.value, current.status.value)

    def _rollback(self, claimed: Draft, original: Draft) -> None:
        # Only undo our own claim; a store failure here is logged, the original error wins
        try:
            if not self.drafts.compare_and_set(original, claimed.status):
                logger.error("draft.rollback_lost", draft_id=original.draft_id)
        except Exception as e:
            logger.error("draft.rollback_failed", draft_id=original.draft_id, error=str(e))

    def _canonical_payload(self, payload: CandidateRecord) -> CandidateRecord:
        return payload.model_copy(update={"category": normalize_category(payload.category)})

    def _approve(self, draft: Draft, params: Mapping[str, Any]) -> Draft:
        missing = draft.payload.missing(self.review.approval_fields)
        if missing:
            raise ValidationError("Draft is missing fields required for approval", missing)

        claimed = self._terminal(draft, DraftStatus.APPROVED, params)
        self._commit(claimed, DraftStatus.PENDING_REVIEW)
        try:
            record = self.records.create_canonical(self._canonical_payload(draft.payload))
        except Exception:
            self._rollback(claimed, draft)
            raise

        approved = claimed.model_copy(update={"canonical_id": record.record_id})
        self.drafts.save(approved)
        return approved

    def _reject(self, draft: Draft, params: Mapping[str, Any]) -> Draft:
        notes = params.get("notes")
        extra = {"reviewer_notes": draft.add_note(notes)} if notes else {}
        rejected = self._terminal(draft, DraftStatus.REJECTED, params, **extra)
        self._commit(rejected, DraftStatus.PENDING_REVIEW)
        return rejected

    def _merge(self, draft: Draft, params: Mapping[str, Any]) -> Draft:
        existing_id = params.get("existing_id")
        if existing_id is None or not str(existing_id).strip():
            raise ValidationError("Merge requires an existing record id", ["existing_id"])
        existing_id = str(existing_id).strip()

        existing = self.records.get_by_id(existing_id)
        if existing is None:
            raise NotFoundError("record", existing_id)

        outcome = self.resolver.merge(self._canonical_payload(draft.payload), existing)
        merged = self._terminal(
            draft, DraftStatus.MERGED, params, duplicate_clinic_id=existing.record_id
        )
        self._commit(merged, DraftStatus.PENDING_REVIEW)
        if outcome.changed:
            try:
                self.records.update_record(outcome.record)
            except Exception:
                self._rollback(merged, draft)
                raise
        return merged

    # -------------------------- Review helpers -----------------------

    def dismiss_duplicate(self, draft_id: str, existing_id: str, reason: str) -> Draft:
        """Drop a flagged match the reviewer judged distinct; the draft stays queued."""
        draft = self._require(draft_id)
        if draft.status is not DraftStatus.PENDING_REVIEW:
            raise ConflictError(draft_id, DraftStatus.PENDING_REVIEW.value, draft.status.value)

        existing_id = str(existing_id)
        remaining = [m for m in draft.duplicate_matches if m.existing_id != existing_id]
        if len(remaining) == len(draft.duplicate_matches):
            raise NotFoundError("duplicate match", existing_id)

        updated = draft.model_copy(
            update={
                "duplicate_matches": remaining,
                "reviewer_notes": draft.add_note(f"Duplicate rejected: {reason}"),
                "updated_at": _now(),
                "version": draft.version + 1,
            }
        )
        self._commit(updated, DraftStatus.PENDING_REVIEW)
        logger.info("draft.duplicate_dismissed", draft_id=draft_id, existing_id=existing_id)
        return updated

    def approval_report(self, draft_id: str) -> ApprovalReport:
        draft = self._require(draft_id)
        return ApprovalReport(
            draft_id=draft.draft_id,
            status=draft.status,
            missing_required=draft.payload.missing(self.review.approval_fields),
            missing_recommended=draft.payload.missing(self.review.recommended_fields),
        )
