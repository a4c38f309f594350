"""Tests for boundary validation of listing and draft models."""

import pytest
from pydantic import ValidationError

from directory_dedupe.exceptions import ConflictError, NotFoundError
from directory_dedupe.exceptions import ValidationError as ReviewValidationError
from directory_dedupe.models import (
    CandidateRecord,
    ConfidenceBand,
    Draft,
    DraftStatus,
    ExistingRecord,
    MatchResult,
    MatchStrategy,
)


class TestCandidateRecord:
    def test_blank_strings_become_none(self):
        record = CandidateRecord(name="  ", phone="", website=" https://glow.com ")
        assert record.name is None
        assert record.phone is None
        assert record.website == "https://glow.com"

    def test_numeric_strings_coerced(self):
        record = CandidateRecord(latitude="28.7589", longitude="-81.3178", zip_code=32746)
        assert record.latitude == pytest.approx(28.7589)
        assert record.zip_code == "32746"
        assert record.has_coordinates

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_out_of_range_coordinates_rejected(self, lat, lon):
        with pytest.raises(ValidationError):
            CandidateRecord(latitude=lat, longitude=lon)

    def test_non_numeric_coordinate_rejected(self):
        with pytest.raises(ValidationError):
            CandidateRecord(latitude="north")

    def test_frozen(self):
        record = CandidateRecord(name="Glow")
        with pytest.raises(ValidationError):
            record.name = "Other"

    def test_missing_fields(self):
        record = CandidateRecord(name="Glow", city="Orlando")
        assert record.missing(("name", "address", "city", "state")) == ["address", "state"]


def test_existing_record_id_is_text():
    assert ExistingRecord(record_id=12).record_id == "12"


def test_match_result_score_clamped():
    result = MatchResult(
        existing_id="1",
        strategy=MatchStrategy.PHONE_NORMALIZED_EQUAL,
        raw_score=1.2,
        confidence_band=ConfidenceBand.MEDIUM,
        match_reason="phone number match",
    )
    assert result.raw_score == 1.0


def test_draft_defaults():
    draft = Draft(payload=CandidateRecord(name="Glow"))
    assert draft.status is DraftStatus.DRAFT
    assert draft.version == 1
    assert not draft.is_terminal
    assert draft.add_note("first") == "first"


def test_terminal_statuses():
    assert {s for s in DraftStatus if s.is_terminal} == {
        DraftStatus.APPROVED,
        DraftStatus.REJECTED,
        DraftStatus.MERGED,
    }


def test_error_messages():
    assert str(ReviewValidationError("Missing", ["website", "phone"])) == "Missing: website, phone"
    assert str(ConflictError("d1", "pending_review", "approved")) == (
        "Draft d1 is approved, expected pending_review"
    )
    assert str(NotFoundError("record", "9")) == "record 9 not found"
