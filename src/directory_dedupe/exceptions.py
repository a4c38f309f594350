"""Error taxonomy surfaced to callers of the engine.

A duplicate check that finds nothing is a normal result, not an error.
"""
from __future__ import annotations

from dataclasses import dataclass, field


class DirectoryError(Exception):
    """Base class for engine errors."""


@dataclass
class ValidationError(DirectoryError):
    """Raised when a draft lacks the fields a transition requires.

    No state is changed; the reviewer is shown ``missing_fields``.
    """

    reason: str
    missing_fields: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.missing_fields:
            return f"{self.reason}: {', '.join(self.missing_fields)}"
        return self.reason


@dataclass
class ConflictError(DirectoryError):
    """Raised when a transition is attempted from a state that forbids it.

    Covers already-terminal drafts and lost compare-and-swap races. Callers
    should refetch the draft and re-evaluate.
    """

    draft_id: str
    expected: str
    actual: str

    def __str__(self) -> str:
        return f"Draft {self.draft_id} is {self.actual}, expected {self.expected}"


@dataclass
class NotFoundError(DirectoryError):
    """Raised when a referenced draft or record does not exist."""

    kind: str
    identifier: str

    def __str__(self) -> str:
        return f"{self.kind} {self.identifier} not found"
