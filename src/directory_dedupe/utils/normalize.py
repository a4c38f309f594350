"""Normalization utilities for directory listings.

Canonicalizes names, addresses, phone numbers, URLs and categories into
comparable forms so that duplicate detection compares like with like.

Every function here is total: it never raises, and input it cannot make sense
of normalizes to an empty string.
"""

from __future__ import annotations

import re
import unicodedata
from enum import Enum
from typing import Any


class FieldKind(str, Enum):
    """Kinds of free-text field the normalizer understands."""

    NAME = "name"
    ADDRESS = "address"
    PHONE = "phone"
    URL = "url"


# Leading honorifics to strip from listing names
NAME_PREFIXES = {"dr", "mr", "mrs", "ms", "prof"}

# Trailing degree and generation tokens to strip from listing names
NAME_SUFFIXES = {"md", "do", "facs", "phd", "jr", "sr", "ii", "iii", "iv"}

# Trailing legal-entity tokens; they never distinguish two listings
ENTITY_SUFFIXES = {"llc", "inc", "pllc", "pc", "ltd", "corp", "incorporated"}

# Trailing business-type descriptors, matched as whole token runs
DESCRIPTOR_SUFFIXES: tuple[tuple[str, ...], ...] = (
    ("medical", "spa"),
    ("med", "spa"),
    ("medspa",),
)

# Street vocabulary folded to its postal abbreviation
ADDRESS_ABBREVIATIONS = {
    "street": "st",
    "avenue": "ave",
    "boulevard": "blvd",
    "road": "rd",
    "drive": "dr",
    "lane": "ln",
    "court": "ct",
    "place": "pl",
    "parkway": "pkwy",
    "highway": "hwy",
    "suite": "ste",
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
}

US_STATES = {
    "alabama": "al", "alaska": "ak", "arizona": "az", "arkansas": "ar",
    "california": "ca", "colorado": "co", "connecticut": "ct", "delaware": "de",
    "district of columbia": "dc", "florida": "fl", "georgia": "ga", "hawaii": "hi",
    "idaho": "id", "illinois": "il", "indiana": "in", "iowa": "ia",
    "kansas": "ks", "kentucky": "ky", "louisiana": "la", "maine": "me",
    "maryland": "md", "massachusetts": "ma", "michigan": "mi", "minnesota": "mn",
    "mississippi": "ms", "missouri": "mo", "montana": "mt", "nebraska": "ne",
    "nevada": "nv", "new hampshire": "nh", "new jersey": "nj", "new mexico": "nm",
    "new york": "ny", "north carolina": "nc", "north dakota": "nd", "ohio": "oh",
    "oklahoma": "ok", "oregon": "or", "pennsylvania": "pa", "rhode island": "ri",
    "south carolina": "sc", "south dakota": "sd", "tennessee": "tn", "texas": "tx",
    "utah": "ut", "vermont": "vt", "virginia": "va", "washington": "wa",
    "west virginia": "wv", "wisconsin": "wi", "wyoming": "wy",
}

# Standard listing categories
PLASTIC_SURGERY = "Plastic Surgery"
MEDSPA_AESTHETICS = "Medspa / Aesthetics"
MEDICAL = "Medical"
DERMATOLOGY = "Dermatology"
OTHER = "Other"
CATEGORIES = (PLASTIC_SURGERY, MEDSPA_AESTHETICS, MEDICAL, DERMATOLOGY, OTHER)

# Checked in order; dermatology precedes medspa so "skin care spa" stays dermatology
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (PLASTIC_SURGERY, (
        "plastic surgeon", "plastic surgery", "cosmetic surgeon", "cosmetic surgery",
        "plastic", "reconstructive surgery", "reconstructive surgeon",
    )),
    (DERMATOLOGY, ("dermatolog", "skin care", "skincare", "skin clinic")),
    (MEDSPA_AESTHETICS, (
        "med spa", "medical spa", "medspa", "aesthetic", "beauty clinic",
        "beauty center", "spa",
    )),
    (MEDICAL, (
        "hospital", "medical center", "health center", "healthcare", "surgical center",
        "surgery center", "doctor", "physician", "nurse practitioner", "family medicine",
        "primary care", "urgent care", "medical clinic", "health clinic", "clinic",
    )),
)

_APOSTROPHE_RE = re.compile(r"['’`]")
_PUNCT_RE = re.compile(r"[^\w\s-]|_")
_WS_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"\D")
_SCHEME_RE = re.compile(r"^(?:https?:)?//", re.IGNORECASE)
_HOST_RE = re.compile(r"^[a-z0-9-]+(?:\.[a-z0-9-]+)*$")


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def _strip_diacritics(s: str) -> str:
    return unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")


def canonical_text(value: Any) -> str:
    """Trim, fold case and accents, strip punctuation except hyphens, collapse whitespace."""
    text = _as_text(value)
    if not text:
        return ""
    text = _strip_diacritics(text).casefold()
    text = _APOSTROPHE_RE.sub("", text)
    text = _PUNCT_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def _strip_trailing_descriptor(parts: list[str]) -> bool:
    for phrase in DESCRIPTOR_SUFFIXES:
        n = len(phrase)
        if len(parts) > n and tuple(parts[-n:]) == phrase:
            del parts[-n:]
            return True
    return False


def normalize_name(value: Any) -> str:
    """Normalize a listing name for comparison.

    - Canonicalizes case, accents, punctuation and whitespace
    - Removes leading honorifics (Dr., Mr., ...)
    - Removes trailing degrees, generations and legal-entity tokens
      (MD, PhD, Jr., LLC, ...) and business-type descriptors (Med Spa)

    At least one token is always kept, so "Dr" alone stays "dr".

    Args:
        value: The raw name

    Returns:
        Normalized name string
    """
    parts = canonical_text(value).split()

    while len(parts) > 1 and parts[0] in NAME_PREFIXES:
        parts.pop(0)

    while len(parts) > 1:
        if parts[-1] in NAME_SUFFIXES or parts[-1] in ENTITY_SUFFIXES:
            parts.pop()
        elif not _strip_trailing_descriptor(parts):
            break

    return " ".join(parts)


def normalize_address(value: Any) -> str:
    """Normalize a street address for comparison.

    Same canonicalization as names, without honorific stripping, plus
    street vocabulary folded to postal abbreviations ("Street" -> "st").
    """
    parts = canonical_text(value).split()
    return " ".join(ADDRESS_ABBREVIATIONS.get(p, p) for p in parts)


def normalize_phone(value: Any) -> str:
    """Keep only the digits of a phone number."""
    return _NON_DIGIT_RE.sub("", _as_text(value))


def normalize_url(value: Any) -> str:
    """Reduce a URL to its host name for domain comparison.

    Strips the http/https scheme, credentials, port, path, query, fragment
    and a leading ``www.``. A value that does not yield a plausible host name
    normalizes to ``""``.
    """
    text = _as_text(value).strip().lower()
    if not text:
        return ""
    text = _SCHEME_RE.sub("", text)
    if "://" in text:
        # Some other scheme (ftp, mailto-ish junk): not a website
        return ""
    host = re.split(r"[/?#]", text, maxsplit=1)[0]
    host = host.rsplit("@", 1)[-1]
    host = host.split(":", 1)[0].rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    if not host or not _HOST_RE.match(host):
        return ""
    return host


def normalize_locality(value: Any) -> str:
    """Normalize a city name for exact-equality comparison."""
    return canonical_text(value)


def normalize_state(value: Any) -> str:
    """Normalize a US state to its two-letter code when recognised."""
    text = canonical_text(value)
    return US_STATES.get(text, text)


_DISPATCH = {
    FieldKind.NAME: normalize_name,
    FieldKind.ADDRESS: normalize_address,
    FieldKind.PHONE: normalize_phone,
    FieldKind.URL: normalize_url,
}


def normalize(value: Any, kind: FieldKind | str) -> str:
    """Normalize ``value`` according to its field kind.

    Unknown kinds normalize to ``""`` rather than raising.
    """
    try:
        field_kind = FieldKind(kind)
    except ValueError:
        return ""
    return _DISPATCH[field_kind](value)


def _category_key(value: str) -> str:
    text = re.sub(r"[^\w\s]", "", " ".join(value.lower().split()))
    return text[:-1] if text.endswith("s") else text


def normalize_category(value: Any) -> str | None:
    """Consolidate a free-text category into one of the standard buckets.

    Returns ``None`` for empty input so completeness checks still see the
    category as missing; unrecognised text maps to ``Other``.
    """
    text = _as_text(value).strip()
    if not text:
        return None
    if text in CATEGORIES:
        return text
    key = _category_key(text)
    if not key:
        return OTHER
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(_category_key(k) in key for k in keywords):
            return category
    return OTHER
