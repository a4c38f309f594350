"""Interfaces the engine consumes from its host.

The engine never talks to a database or an HTTP API directly; callers plug in
adapters satisfying these protocols (see ``stores``, ``projections`` and
``geo``).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

from directory_dedupe.utils.normalize import normalize_phone, normalize_state, normalize_url

if TYPE_CHECKING:
    from directory_dedupe.models import (
        CandidateRecord,
        Coordinates,
        Draft,
        DraftStatus,
        ExistingRecord,
        ListingFields,
    )


class PoolHints(BaseModel):
    """Narrowing hints for candidate-pool retrieval.

    A store may use them to skip records that cannot match, but must still
    return every record sharing the state, the identifier, the phone digits
    or the website host, and every record with no state on file. When
    either side lacks coordinates the state is no filter at all: only the
    distance veto may drop a pair, and it needs both points.
    """

    state: str = ""
    external_id: str = ""
    phone: str = ""
    domain: str = ""
    located: bool = False

    @classmethod
    def for_record(cls, record: ListingFields) -> PoolHints:
        return cls(
            state=normalize_state(record.state),
            external_id=(record.external_id or "").strip(),
            phone=normalize_phone(record.phone),
            domain=normalize_url(record.website),
            located=record.has_coordinates,
        )

    def admits(self, record: ListingFields) -> bool:
        """True when ``record`` must be part of the pool for these hints."""
        state = normalize_state(record.state)
        if not self.state or not state or state == self.state:
            return True
        if not self.located or not record.has_coordinates:
            return True
        if self.external_id and (record.external_id or "").strip() == self.external_id:
            return True
        if self.phone and normalize_phone(record.phone) == self.phone:
            return True
        return bool(self.domain) and normalize_url(record.website) == self.domain


@runtime_checkable
class RecordStore(Protocol):
    """Canonical directory entries."""

    def list_candidate_pool(self, hints: PoolHints) -> list[ExistingRecord]:
        """Existing records a candidate may duplicate."""
        ...

    def create_canonical(self, payload: CandidateRecord) -> ExistingRecord:
        """Persist an approved payload as a new listing and return it."""
        ...

    def get_by_id(self, record_id: str) -> ExistingRecord | None:
        ...

    def update_record(self, record: ExistingRecord) -> ExistingRecord:
        """Persist a merged record. Raises NotFoundError if it vanished."""
        ...


@runtime_checkable
class DraftStore(Protocol):
    """Submitted drafts and their review state."""

    def add(self, draft: Draft) -> Draft:
        ...

    def get(self, draft_id: str) -> Draft | None:
        ...

    def save(self, draft: Draft) -> Draft:
        """Unconditionally overwrite a stored draft."""
        ...

    def compare_and_set(self, draft: Draft, expected_status: DraftStatus) -> bool:
        """Store ``draft`` only if the stored copy is still ``expected_status``.

        Returns:
            True when the write happened, False when another writer got there first
        """
        ...

    def list(
        self,
        status: DraftStatus | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[Draft]:
        ...


@runtime_checkable
class GeoProvider(Protocol):
    """Address to coordinates lookup."""

    def lookup_coordinates(self, candidate: CandidateRecord) -> Coordinates | None:
        """Coordinates for the candidate's address, or None when unknown."""
        ...
