"""Listing models: the submitted candidate and the persisted directory entry.

Loosely typed input (form posts, spreadsheet rows, JSON blobs) is validated
into these models at the boundary so the matching engine only ever sees
typed, bounded values.
"""
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Scalar fields shared by candidates and existing records, in display order.
SCALAR_FIELDS: tuple[str, ...] = (
    "name",
    "address",
    "city",
    "state",
    "zip_code",
    "phone",
    "website",
    "email",
    "external_id",
    "category",
    "latitude",
    "longitude",
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def is_empty(value: Any) -> bool:
    """True for None, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class Provider(BaseModel):
    """A practitioner listed under a clinic."""

    model_config = ConfigDict(frozen=True)

    name: str
    specialty: str | None = None
    photo_url: str | None = None

    @field_validator("specialty", "photo_url", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class Procedure(BaseModel):
    """A service offered by a clinic."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: str | None = None
    average_cost: float | None = Field(default=None, ge=0.0)
    provider_name: str | None = None

    @field_validator("category", "provider_name", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ListingFields(BaseModel):
    """Field shape shared by candidates and existing records."""

    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone: str | None = None
    website: str | None = None
    email: str | None = None
    external_id: str | None = Field(default=None, description="Third-party place identifier")
    category: str | None = None
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)

    providers: list[Provider] = Field(default_factory=list)
    procedures: list[Procedure] = Field(default_factory=list)

    @field_validator(
        "name", "address", "city", "state", "zip_code", "phone",
        "website", "email", "external_id", "category",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return _blank_to_none(value)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None:
            return None
        number = float(value)
        if not math.isfinite(number):
            return None
        return number

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def missing(self, fields: tuple[str, ...] | list[str]) -> list[str]:
        """Names of the given fields that are empty on this record."""
        return [f for f in fields if is_empty(getattr(self, f, None))]

    def scalar_values(self) -> dict[str, Any]:
        return {f: getattr(self, f) for f in SCALAR_FIELDS}


class CandidateRecord(ListingFields):
    """A submitted listing under test.

    Frozen: a new duplicate check is a new computation over a new snapshot,
    never a mutation of the one already scored.
    """

    model_config = ConfigDict(frozen=True)

    def with_coordinates(self, latitude: float, longitude: float) -> CandidateRecord:
        return self.model_copy(update={"latitude": latitude, "longitude": longitude})


class ExistingRecord(ListingFields):
    """A persisted directory entry. Owned by the record store."""

    record_id: str

    @field_validator("record_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        return str(value) if value is not None else value


class Coordinates(BaseModel):
    """A geocoded point."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
