"""Shared fixtures for directory dedupe tests."""
from __future__ import annotations

from typing import Any

import pytest

from directory_dedupe.models import CandidateRecord, ExistingRecord
from directory_dedupe.stores import InMemoryDraftStore, InMemoryRecordStore
from directory_dedupe.workflow import DraftLifecycle

# Lake Mary, FL and Chicago, IL
LAKE_MARY = (28.7589, -81.3178)
CHICAGO = (41.8781, -87.6298)


def complete_listing(**overrides: Any) -> dict[str, Any]:
    """A listing with every field approval requires."""
    data = {
        "name": "Glow Aesthetics",
        "address": "100 Main Street",
        "city": "Lake Mary",
        "state": "FL",
        "zip_code": "32746",
        "phone": "(407) 555-0100",
        "website": "https://www.glowaesthetics.com",
        "email": "hello@glowaesthetics.com",
        "external_id": "ChIJglow123",
        "category": "medical spa",
    }
    data.update(overrides)
    return data


def candidate(**fields: Any) -> CandidateRecord:
    return CandidateRecord(**fields)


def existing(record_id: str | int, **fields: Any) -> ExistingRecord:
    return ExistingRecord(record_id=record_id, **fields)


@pytest.fixture()
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def drafts() -> InMemoryDraftStore:
    return InMemoryDraftStore()


@pytest.fixture()
def lifecycle(drafts: InMemoryDraftStore, records: InMemoryRecordStore) -> DraftLifecycle:
    return DraftLifecycle(drafts, records)
