"""Tests for the SQLite record and draft store."""

from __future__ import annotations

from pathlib import Path

import pytest

from directory_dedupe.exceptions import NotFoundError
from directory_dedupe.models import CandidateRecord, Draft, DraftAction, DraftStatus, Provider
from directory_dedupe.ports import DraftStore, PoolHints, RecordStore
from directory_dedupe.projections import SQLiteDirectoryStore
from directory_dedupe.workflow import DraftLifecycle

from conftest import CHICAGO, LAKE_MARY, complete_listing, existing


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteDirectoryStore:
    return SQLiteDirectoryStore(tmp_path / "data" / "directory.db")


def test_satisfies_both_store_protocols(store):
    assert isinstance(store, RecordStore)
    assert isinstance(store, DraftStore)


class TestRecords:
    def test_round_trip_keeps_children(self, store):
        store.put(existing(1, name="Glow", providers=[Provider(name="Ana Ruiz", specialty="Derm")]))
        record = store.get_by_id("1")
        assert record.name == "Glow"
        assert record.providers[0].specialty == "Derm"

    def test_create_canonical_continues_numeric_ids(self, store):
        store.put(existing(5, name="Five"))
        store.put(existing("place-abc", name="Opaque"))
        created = store.create_canonical(CandidateRecord(name="New"))
        assert created.record_id == "6"
        assert store.count_records() == 3

    def test_update_missing_record(self, store):
        with pytest.raises(NotFoundError):
            store.update_record(existing(42, name="Ghost"))

    def test_update_record(self, store):
        store.put(existing(1, name="Glow"))
        store.update_record(existing(1, name="Glow", email="hi@glow.com"))
        assert store.get_by_id("1").email == "hi@glow.com"

    def test_pool_filters_by_state_but_keeps_shared_keys(self, store):
        chicago = {"latitude": CHICAGO[0], "longitude": CHICAGO[1]}
        store.put(existing(1, name="Same State", state="FL"))
        store.put(existing(2, name="No State"))
        store.put(existing(3, name="Other State", state="IL", **chicago))
        store.put(existing(4, name="Shared Phone", state="IL", phone="407-555-0100", **chicago))
        store.put(
            existing(5, name="Shared Site", state="IL", website="https://glow.com/about", **chicago)
        )
        store.put(existing(6, name="Unplaced", state="IL"))

        hints = PoolHints.for_record(
            CandidateRecord(
                state="Florida", phone="(407) 555-0100", website="www.glow.com",
                latitude=LAKE_MARY[0], longitude=LAKE_MARY[1],
            )
        )
        ids = [r.record_id for r in store.list_candidate_pool(hints)]
        assert ids == ["1", "2", "4", "5", "6"]

    def test_pool_ignores_state_without_candidate_coordinates(self, store):
        store.put(existing(1, state="FL"))
        store.put(existing(2, state="IL", latitude=CHICAGO[0], longitude=CHICAGO[1]))
        hints = PoolHints.for_record(CandidateRecord(state="FL"))
        assert [r.record_id for r in store.list_candidate_pool(hints)] == ["1", "2"]

    def test_pool_without_hints_returns_everything(self, store):
        store.put(existing(1, state="FL"))
        store.put(existing(2, state="IL"))
        assert len(store.list_candidate_pool(PoolHints())) == 2


class TestDrafts:
    def test_add_get_round_trip(self, store):
        draft = Draft(payload=CandidateRecord(**complete_listing()), source="bulk_import")
        store.add(draft)
        loaded = store.get(draft.draft_id)
        assert loaded == draft

    def test_compare_and_set(self, store):
        draft = Draft(payload=CandidateRecord(name="Glow"), status=DraftStatus.PENDING_REVIEW)
        store.add(draft)
        approved = draft.model_copy(update={"status": DraftStatus.APPROVED, "version": 2})
        rejected = draft.model_copy(update={"status": DraftStatus.REJECTED, "version": 2})

        assert store.compare_and_set(approved, DraftStatus.PENDING_REVIEW) is True
        assert store.compare_and_set(rejected, DraftStatus.PENDING_REVIEW) is False
        assert store.get(draft.draft_id).status is DraftStatus.APPROVED

    def test_save_missing_draft(self, store):
        with pytest.raises(NotFoundError):
            store.save(Draft(payload=CandidateRecord(name="Ghost")))

    def test_list_filters(self, store):
        store.add(Draft(payload=CandidateRecord(name="A"), source="manual"))
        store.add(Draft(payload=CandidateRecord(name="B"), source="bulk_import",
                        status=DraftStatus.PENDING_REVIEW))
        store.add(Draft(payload=CandidateRecord(name="C"), source="bulk_import",
                        status=DraftStatus.PENDING_REVIEW))

        assert len(store.list()) == 3
        assert [d.payload.name for d in store.list(source="manual")] == ["A"]
        assert len(store.list(status=DraftStatus.PENDING_REVIEW)) == 2
        assert len(store.list(status=DraftStatus.PENDING_REVIEW, limit=1)) == 1


def test_lifecycle_over_sqlite(store):
    lifecycle = DraftLifecycle(store, store)
    store.put(existing(1, name="Glow Aesthetics", address="100 Main St", state="FL"))

    draft = lifecycle.create_draft(complete_listing())
    assert draft.duplicate_matches[0].existing_id == "1"

    merged = lifecycle.transition(draft.draft_id, DraftAction.MERGE, {"existing_id": "1"})
    assert merged.status is DraftStatus.MERGED
    assert store.get_by_id("1").website == "https://www.glowaesthetics.com"
    assert store.get(draft.draft_id).status is DraftStatus.MERGED
