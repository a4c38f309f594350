"""Tests for the draft review state machine."""

from __future__ import annotations

import threading

import pytest

from directory_dedupe.exceptions import ConflictError, NotFoundError, ValidationError
from directory_dedupe.models import (
    CandidateRecord,
    Coordinates,
    Draft,
    DraftAction,
    DraftStatus,
    MatchStrategy,
)
from directory_dedupe.stores import InMemoryDraftStore, InMemoryRecordStore
from directory_dedupe.workflow import DraftLifecycle

from conftest import CHICAGO, complete_listing, existing


class StaleDraftStore(InMemoryDraftStore):
    """Serves an outdated snapshot, as a second reviewer's browser would."""

    def __init__(self) -> None:
        super().__init__()
        self.stale: dict[str, Draft] = {}

    def get(self, draft_id: str) -> Draft | None:
        if draft_id in self.stale:
            return self.stale[draft_id].model_copy(deep=True)
        return super().get(draft_id)

    def current(self, draft_id: str) -> Draft | None:
        return super().get(draft_id)


class FailingRecordStore(InMemoryRecordStore):
    def create_canonical(self, payload):
        raise RuntimeError("database unavailable")


class FixedGeo:
    def __init__(self, coords: Coordinates | None) -> None:
        self.coords = coords
        self.calls = 0

    def lookup_coordinates(self, candidate):
        self.calls += 1
        return self.coords


class TestCreateDraft:
    def test_complete_submission_enters_review(self, lifecycle, drafts):
        draft = lifecycle.create_draft(complete_listing(), source="manual", submitted_by="ana")
        assert draft.status is DraftStatus.PENDING_REVIEW
        assert draft.submitted_by == "ana"
        assert drafts.get(draft.draft_id).status is DraftStatus.PENDING_REVIEW

    def test_incomplete_submission_stays_draft(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(state=None))
        assert draft.status is DraftStatus.DRAFT
        assert draft.duplicate_matches == []

    def test_matches_attached(self, records, lifecycle):
        records.put(existing(1, name="Glow Aesthetics", address="100 Main St"))
        draft = lifecycle.create_draft(complete_listing())
        assert [m.existing_id for m in draft.duplicate_matches] == ["1"]
        assert draft.duplicate_matches[0].strategy is MatchStrategy.FUZZY_NAME_ADDRESS

    def test_geocoded_coordinates_kept_on_payload(self, drafts, records):
        geo = FixedGeo(Coordinates(latitude=28.76, longitude=-81.32))
        lifecycle = DraftLifecycle(drafts, records, geo=geo)
        draft = lifecycle.create_draft(complete_listing())
        assert draft.payload.has_coordinates
        assert geo.calls == 1

    def test_geocoded_coordinates_feed_the_veto(self, drafts, records):
        records.put(
            existing(
                1, name="Glow Aesthetics", address="100 Main St",
                latitude=CHICAGO[0], longitude=CHICAGO[1],
            )
        )
        geo = FixedGeo(Coordinates(latitude=28.76, longitude=-81.32))
        draft = DraftLifecycle(drafts, records, geo=geo).create_draft(complete_listing())
        assert draft.duplicate_matches == []


class TestSubmitAndUpdate:
    def test_submit_requires_minimal_fields(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(city=None, state=None))
        with pytest.raises(ValidationError) as exc:
            lifecycle.submit(draft.draft_id)
        assert exc.value.missing_fields == ["city", "state"]

    def test_submit_complete_draft(self, lifecycle, drafts):
        draft = Draft(payload=CandidateRecord(**complete_listing()))
        drafts.add(draft)
        submitted = lifecycle.submit(draft.draft_id)
        assert submitted.status is DraftStatus.PENDING_REVIEW
        assert submitted.version == 2

    def test_submit_twice_conflicts(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(ConflictError):
            lifecycle.submit(draft.draft_id)

    def test_update_promotes_when_complete(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(state=None))
        updated = lifecycle.update_draft(draft.draft_id, {"state": "FL"})
        assert updated.status is DraftStatus.PENDING_REVIEW
        assert updated.payload.state == "FL"

    def test_update_recomputes_matches(self, records, lifecycle):
        draft = lifecycle.create_draft(complete_listing(phone=None))
        assert draft.duplicate_matches == []
        records.put(existing(5, phone="407-555-0199"))
        updated = lifecycle.update_draft(draft.draft_id, {"phone": "(407) 555-0199"})
        assert [m.existing_id for m in updated.duplicate_matches] == ["5"]

    def test_queued_draft_cannot_lose_required_field(self, lifecycle, records, drafts):
        records.put(existing(3, phone="407-555-0100"))
        draft = lifecycle.create_draft(complete_listing())
        assert draft.status is DraftStatus.PENDING_REVIEW

        with pytest.raises(ValidationError) as exc:
            lifecycle.update_draft(draft.draft_id, {"address": ""})

        assert exc.value.missing_fields == ["address"]
        stored = drafts.get(draft.draft_id)
        assert stored.status is DraftStatus.PENDING_REVIEW
        assert stored.payload.address == "100 Main Street"
        assert [m.existing_id for m in stored.duplicate_matches] == ["3"]
        assert stored.version == draft.version

    def test_incomplete_draft_edit_stays_draft(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(state=None, city=None))
        updated = lifecycle.update_draft(draft.draft_id, {"city": "Orlando"})
        assert updated.status is DraftStatus.DRAFT
        assert updated.payload.city == "Orlando"

    def test_invalid_value_raises_domain_error(self, lifecycle, drafts):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(ValidationError) as exc:
            lifecycle.update_draft(draft.draft_id, {"latitude": "north"})
        assert exc.value.missing_fields == ["latitude"]
        assert drafts.get(draft.draft_id).version == draft.version

    def test_moving_clears_stale_coordinates(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(latitude=28.76, longitude=-81.32))
        updated = lifecycle.update_draft(draft.draft_id, {"address": "9 Elm Street"})
        assert updated.payload.latitude is None
        assert updated.payload.longitude is None

    def test_terminal_draft_cannot_be_edited(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        lifecycle.transition(draft.draft_id, DraftAction.REJECT)
        with pytest.raises(ConflictError):
            lifecycle.update_draft(draft.draft_id, {"name": "Other"})


class TestApprove:
    def test_approve_creates_listing(self, lifecycle, records):
        draft = lifecycle.create_draft(complete_listing())
        approved = lifecycle.transition(draft.draft_id, "approve", {"reviewed_by": "rev"})

        assert approved.status is DraftStatus.APPROVED
        assert approved.reviewed_by == "rev"
        assert approved.reviewed_at is not None
        listing = records.get_by_id(approved.canonical_id)
        assert listing.name == "Glow Aesthetics"
        assert listing.category == "Medspa / Aesthetics"

    def test_missing_website_blocks_approval(self, lifecycle, drafts, records):
        draft = lifecycle.create_draft(complete_listing(website=None))
        with pytest.raises(ValidationError) as exc:
            lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        assert "website" in exc.value.missing_fields
        assert drafts.get(draft.draft_id).status is DraftStatus.PENDING_REVIEW
        assert len(records) == 0

    def test_all_missing_fields_listed(self, lifecycle):
        draft = lifecycle.create_draft(
            complete_listing(website=None, phone=None, email=None, external_id=None, category=None)
        )
        with pytest.raises(ValidationError) as exc:
            lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        assert exc.value.missing_fields == ["website", "phone", "email", "external_id", "category"]

    def test_second_approval_conflicts(self, lifecycle, drafts, records):
        draft = lifecycle.create_draft(complete_listing())
        lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        with pytest.raises(ConflictError):
            lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        assert drafts.get(draft.draft_id).status is DraftStatus.APPROVED
        assert len(records) == 1

    def test_lost_race_leaves_winner_untouched(self):
        drafts = StaleDraftStore()
        records = InMemoryRecordStore()
        lifecycle = DraftLifecycle(drafts, records)
        draft = lifecycle.create_draft(complete_listing())
        drafts.stale[draft.draft_id] = drafts.get(draft.draft_id)

        lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        with pytest.raises(ConflictError):
            lifecycle.transition(draft.draft_id, DraftAction.REJECT, {"notes": "late"})

        assert drafts.current(draft.draft_id).status is DraftStatus.APPROVED
        assert drafts.current(draft.draft_id).reviewer_notes is None

    def test_concurrent_approvals_have_one_winner(self, lifecycle, records):
        draft = lifecycle.create_draft(complete_listing())
        outcomes: list[str] = []
        barrier = threading.Barrier(2)

        def approve():
            barrier.wait()
            try:
                lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

        threads = [threading.Thread(target=approve) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["conflict", "ok"]
        assert len(records) == 1

    def test_store_failure_returns_draft_to_review(self, drafts):
        lifecycle = DraftLifecycle(drafts, FailingRecordStore())
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(RuntimeError):
            lifecycle.transition(draft.draft_id, DraftAction.APPROVE)
        assert drafts.get(draft.draft_id).status is DraftStatus.PENDING_REVIEW


class TestRejectAndMerge:
    def test_reject_with_notes(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        rejected = lifecycle.transition(draft.draft_id, DraftAction.REJECT, {"notes": "spam"})
        assert rejected.status is DraftStatus.REJECTED
        assert rejected.reviewer_notes == "spam"
        assert rejected.reviewed_at is not None

    def test_merge_fills_existing_listing(self, lifecycle, records):
        records.put(existing(1, name="Glow Aesthetics", address="100 Main St", email=None))
        draft = lifecycle.create_draft(complete_listing())

        merged = lifecycle.transition(draft.draft_id, DraftAction.MERGE, {"existing_id": 1})

        assert merged.status is DraftStatus.MERGED
        assert merged.duplicate_clinic_id == "1"
        listing = records.get_by_id("1")
        assert listing.email == "hello@glowaesthetics.com"
        assert listing.address == "100 Main St"

    def test_merge_requires_target(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(ValidationError) as exc:
            lifecycle.transition(draft.draft_id, DraftAction.MERGE, {})
        assert exc.value.missing_fields == ["existing_id"]

    def test_merge_into_missing_listing(self, lifecycle, drafts):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(NotFoundError):
            lifecycle.transition(draft.draft_id, DraftAction.MERGE, {"existing_id": "404"})
        assert drafts.get(draft.draft_id).status is DraftStatus.PENDING_REVIEW

    def test_unknown_action(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(ValidationError):
            lifecycle.transition(draft.draft_id, "publish")

    def test_unknown_draft(self, lifecycle):
        with pytest.raises(NotFoundError):
            lifecycle.transition("missing", DraftAction.REJECT)

    def test_draft_status_cannot_be_reviewed(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing(state=None))
        with pytest.raises(ConflictError) as exc:
            lifecycle.transition(draft.draft_id, DraftAction.REJECT)
        assert exc.value.actual == "draft"


class TestReviewHelpers:
    def test_dismiss_duplicate(self, lifecycle, records, drafts):
        records.put(existing(3, phone="407-555-0100"))
        draft = lifecycle.create_draft(complete_listing())
        assert [m.existing_id for m in draft.duplicate_matches] == ["3"]

        updated = lifecycle.dismiss_duplicate(draft.draft_id, "3", "different owner")

        assert updated.status is DraftStatus.PENDING_REVIEW
        assert updated.duplicate_matches == []
        assert updated.reviewer_notes == "Duplicate rejected: different owner"
        assert drafts.get(draft.draft_id).duplicate_matches == []

    def test_dismiss_unknown_match(self, lifecycle):
        draft = lifecycle.create_draft(complete_listing())
        with pytest.raises(NotFoundError):
            lifecycle.dismiss_duplicate(draft.draft_id, "99", "nope")

    def test_approval_report(self, lifecycle, drafts):
        draft = lifecycle.create_draft(complete_listing(email=None, zip_code=None))
        report = lifecycle.approval_report(draft.draft_id)
        assert report.missing_required == ["email"]
        assert report.missing_recommended == ["zip_code", "latitude", "longitude"]
        assert not report.ready
        assert drafts.get(draft.draft_id).version == draft.version
