"""In-memory record and draft stores.

Used by tests and by callers embedding the engine without a database. All
mutation happens under a lock so compare-and-set is atomic across threads.
"""
from __future__ import annotations

import threading
from collections.abc import Iterable

from directory_dedupe.exceptions import NotFoundError
from directory_dedupe.models import CandidateRecord, Draft, DraftStatus, ExistingRecord
from directory_dedupe.ports import PoolHints


class InMemoryRecordStore:
    """Canonical listings keyed by record id; new ids are sequential integers."""

    def __init__(self, records: Iterable[ExistingRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, ExistingRecord] = {}
        self._next_id = 1
        for record in records:
            self.put(record)

    def put(self, record: ExistingRecord) -> ExistingRecord:
        """Insert or replace a record under its own id."""
        with self._lock:
            self._records[record.record_id] = record
            if record.record_id.isdigit():
                self._next_id = max(self._next_id, int(record.record_id) + 1)
        return record

    def list_candidate_pool(self, hints: PoolHints) -> list[ExistingRecord]:
        with self._lock:
            return [r for r in self._records.values() if hints.admits(r)]

    def create_canonical(self, payload: CandidateRecord) -> ExistingRecord:
        with self._lock:
            record_id = str(self._next_id)
            self._next_id += 1
            record = ExistingRecord(record_id=record_id, **payload.model_dump())
            self._records[record_id] = record
        return record

    def get_by_id(self, record_id: str) -> ExistingRecord | None:
        with self._lock:
            return self._records.get(str(record_id))

    def update_record(self, record: ExistingRecord) -> ExistingRecord:
        with self._lock:
            if record.record_id not in self._records:
                raise NotFoundError("record", record.record_id)
            self._records[record.record_id] = record
        return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class InMemoryDraftStore:
    """Drafts keyed by draft id. Stored copies are detached from callers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._drafts: dict[str, Draft] = {}

    def add(self, draft: Draft) -> Draft:
        with self._lock:
            self._drafts[draft.draft_id] = draft.model_copy(deep=True)
        return draft

    def get(self, draft_id: str) -> Draft | None:
        with self._lock:
            draft = self._drafts.get(draft_id)
            return draft.model_copy(deep=True) if draft else None

    def save(self, draft: Draft) -> Draft:
        with self._lock:
            if draft.draft_id not in self._drafts:
                raise NotFoundError("draft", draft.draft_id)
            self._drafts[draft.draft_id] = draft.model_copy(deep=True)
        return draft

    def compare_and_set(self, draft: Draft, expected_status: DraftStatus) -> bool:
        with self._lock:
            current = self._drafts.get(draft.draft_id)
            if current is None or current.status is not expected_status:
                return False
            self._drafts[draft.draft_id] = draft.model_copy(deep=True)
            return True

    def list(
        self,
        status: DraftStatus | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[Draft]:
        with self._lock:
            drafts = [
                d.model_copy(deep=True)
                for d in sorted(self._drafts.values(), key=lambda d: (d.created_at, d.draft_id))
                if (status is None or d.status is status) and (source is None or d.source == source)
            ]
        return drafts[:limit] if limit is not None else drafts
