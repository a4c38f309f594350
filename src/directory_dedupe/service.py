"""Facade over matching, review and import.

This is the surface hosts call; everything else is wiring.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .config import MatchingConfig, ReviewConfig
from .exceptions import NotFoundError
from .logging import get_logger
from .models import (
    CandidateRecord,
    ConfidenceBand,
    Draft,
    DraftAction,
    DraftStatus,
    DuplicateCheck,
    MatchResult,
)
from .ports import DraftStore, GeoProvider, RecordStore
from .workflow import ApprovalReport, DraftLifecycle

logger = get_logger(__name__)


class BulkImportRow(BaseModel):
    """Outcome for one imported row."""

    row: int
    name: str | None = None
    draft_id: str | None = None
    status: str = Field(description="Draft status, or 'error' when the row was rejected")
    confidence_band: ConfidenceBand | None = None
    duplicates: list[MatchResult] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class BulkImportReport(BaseModel):
    """Summary of a bulk import."""

    drafts_created: int = 0
    duplicates_found: int = 0
    failed: int = 0
    rows: list[BulkImportRow] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0


def _format_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return messages


class DirectoryService:
    """Duplicate detection, draft review and bulk import over pluggable stores.

    Example:
        service = DirectoryService(InMemoryRecordStore(), InMemoryDraftStore())
        check = service.check_duplicates({"name": "Blooming Beauty", ...})
    """

    def __init__(
        self,
        records: RecordStore,
        drafts: DraftStore,
        config: MatchingConfig | None = None,
        geo: GeoProvider | None = None,
        *,
        review: ReviewConfig | None = None,
    ) -> None:
        self.records = records
        self.drafts = drafts
        self.lifecycle = DraftLifecycle(drafts, records, config, geo, review=review)

    @property
    def config(self) -> MatchingConfig:
        return self.lifecycle.config

    @staticmethod
    def _candidate(candidate: CandidateRecord | Mapping[str, Any]) -> CandidateRecord:
        if isinstance(candidate, CandidateRecord):
            return candidate
        return CandidateRecord.model_validate(candidate)

    def check_duplicates(self, candidate: CandidateRecord | Mapping[str, Any]) -> DuplicateCheck:
        """Score a candidate against existing listings without storing anything."""
        _, check = self.lifecycle.check_duplicates(self._candidate(candidate))
        return check

    def create_draft(
        self,
        candidate: CandidateRecord | Mapping[str, Any],
        source: str = "manual",
        submitted_by: str | None = None,
    ) -> Draft:
        return self.lifecycle.create_draft(self._candidate(candidate), source, submitted_by)

    def transition_draft(
        self,
        draft_id: str,
        action: DraftAction | str,
        params: Mapping[str, Any] | None = None,
    ) -> Draft:
        return self.lifecycle.transition(draft_id, action, params)

    def submit_draft(self, draft_id: str) -> Draft:
        return self.lifecycle.submit(draft_id)

    def update_draft(self, draft_id: str, changes: Mapping[str, Any]) -> Draft:
        return self.lifecycle.update_draft(draft_id, changes)

    def dismiss_duplicate(self, draft_id: str, existing_id: str, reason: str) -> Draft:
        return self.lifecycle.dismiss_duplicate(draft_id, existing_id, reason)

    def approval_report(self, draft_id: str) -> ApprovalReport:
        return self.lifecycle.approval_report(draft_id)

    def get_draft(self, draft_id: str) -> Draft:
        draft = self.drafts.get(draft_id)
        if draft is None:
            raise NotFoundError("draft", draft_id)
        return draft

    def list_drafts(
        self,
        status: DraftStatus | str | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[Draft]:
        if status is not None:
            status = DraftStatus(status)
        return self.drafts.list(status=status, source=source, limit=limit)

    def bulk_import(
        self,
        rows: Iterable[Mapping[str, Any]],
        submitted_by: str | None = None,
    ) -> BulkImportReport:
        """
        Create a review draft for each parsed row.

        Each row is validated, checked for duplicates and queued for review.
        A bad row is reported and skipped; it never aborts the batch.

        Args:
            rows: Already-parsed rows (one mapping per listing)
            submitted_by: Who is importing

        Returns:
            BulkImportReport with one entry per input row
        """
        report = BulkImportReport()
        review = self.lifecycle.review

        for index, row in enumerate(rows, start=1):
            name = row.get("name") if isinstance(row, Mapping) else None
            try:
                candidate = CandidateRecord.model_validate(row)
            except PydanticValidationError as e:
                report.failed += 1
                report.rows.append(
                    BulkImportRow(row=index, name=name, status="error", errors=_format_errors(e))
                )
                logger.warning("bulk_import.invalid_row", row=index, errors=e.error_count())
                continue

            missing = candidate.missing(review.queue_fields)
            if missing:
                report.failed += 1
                report.rows.append(
                    BulkImportRow(
                        row=index,
                        name=candidate.name,
                        status="error",
                        missing_fields=missing,
                        errors=[f"missing required fields: {', '.join(missing)}"],
                    )
                )
                logger.warning("bulk_import.incomplete_row", row=index, missing=missing)
                continue

            draft = self.lifecycle.create_draft(candidate, "bulk_import", submitted_by)
            band = draft.duplicate_matches[0].confidence_band if draft.duplicate_matches else None
            report.drafts_created += 1
            if draft.duplicate_matches:
                report.duplicates_found += 1
            report.rows.append(
                BulkImportRow(
                    row=index,
                    name=candidate.name,
                    draft_id=draft.draft_id,
                    status=draft.status.value,
                    confidence_band=band,
                    duplicates=draft.duplicate_matches,
                    missing_fields=draft.payload.missing(review.approval_fields),
                )
            )

        logger.info(
            "bulk_import.completed",
            drafts_created=report.drafts_created,
            duplicates_found=report.duplicates_found,
            failed=report.failed,
        )
        return report
