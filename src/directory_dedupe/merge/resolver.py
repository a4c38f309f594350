"""Field-level merge of a submission into an existing listing.

Existing curated values always win; the submission only fills gaps. Child
entities (providers, procedures) are unioned by normalized name.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from directory_dedupe.logging import get_logger
from directory_dedupe.models import (
    SCALAR_FIELDS,
    CandidateRecord,
    ChildAction,
    ExistingRecord,
    FieldSource,
    MergeDecision,
    is_empty,
)
from directory_dedupe.utils.normalize import normalize_name

logger = get_logger(__name__)

CHILD_COLLECTIONS: tuple[str, ...] = ("providers", "procedures")


class MergeOutcome(BaseModel):
    """Merged record plus the decision log that produced it."""

    record: ExistingRecord
    decision: MergeDecision
    changed: bool = Field(default=False, description="True when the merge altered the record")


class MergeResolver:
    """
    Combines a submitted payload with an existing directory entry.

    - Scalars: a non-empty existing value wins, otherwise the submission fills it
    - Children: keyed by normalized name; a matching child has its empty
      attributes filled, an unknown child is appended, and repeats within the
      same submission collapse into the first
    """

    def merge(self, payload: CandidateRecord, existing: ExistingRecord) -> MergeOutcome:
        """
        Merge ``payload`` into ``existing`` without mutating either.

        Args:
            payload: The submitted listing
            existing: The persisted listing it duplicates

        Returns:
            MergeOutcome with the merged record and per-field decisions
        """
        decision = MergeDecision(existing_id=existing.record_id)
        updates: dict[str, Any] = {}

        for field_name in SCALAR_FIELDS:
            current = getattr(existing, field_name)
            incoming = getattr(payload, field_name)
            if not is_empty(current):
                decision.field_sources[field_name] = FieldSource.EXISTING
            elif not is_empty(incoming):
                decision.field_sources[field_name] = FieldSource.SUBMISSION
                updates[field_name] = incoming
            else:
                decision.field_sources[field_name] = FieldSource.EMPTY

        for collection in CHILD_COLLECTIONS:
            merged, actions = self._merge_children(
                collection, getattr(existing, collection), getattr(payload, collection)
            )
            decision.child_actions.extend(actions)
            if any(a.action != "collapsed" for a in actions):
                updates[collection] = merged

        # Coordinates travel as a pair
        if ("latitude" in updates) != ("longitude" in updates):
            for coord in ("latitude", "longitude"):
                if coord in updates:
                    del updates[coord]
                    decision.field_sources[coord] = (
                        FieldSource.EXISTING if getattr(existing, coord) is not None else FieldSource.EMPTY
                    )

        record = existing.model_copy(update=updates) if updates else existing
        logger.info(
            "merge.applied",
            existing_id=existing.record_id,
            filled=decision.filled_fields,
            children=len(decision.child_actions),
        )
        return MergeOutcome(record=record, decision=decision, changed=bool(updates))

    def _merge_children(
        self,
        collection: str,
        current: list[Any],
        incoming: list[Any],
    ) -> tuple[list[Any], list[ChildAction]]:
        """Union two child lists keyed by normalized name."""
        merged = list(current)
        index: dict[str, int] = {}
        for pos, child in enumerate(merged):
            index.setdefault(self._child_key(child), pos)

        actions: list[ChildAction] = []
        seen: set[str] = set()
        for child in incoming:
            key = self._child_key(child)
            if not key:
                continue
            if key in seen:
                actions.append(ChildAction(collection=collection, key=key, action="collapsed"))
                continue
            seen.add(key)

            if key in index:
                pos = index[key]
                filled = self._fill_child(merged[pos], child)
                if filled is not merged[pos]:
                    merged[pos] = filled
                    actions.append(ChildAction(collection=collection, key=key, action="updated"))
            else:
                index[key] = len(merged)
                merged.append(child)
                actions.append(ChildAction(collection=collection, key=key, action="appended"))

        return merged, actions

    @staticmethod
    def _child_key(child: Any) -> str:
        return normalize_name(getattr(child, "name", None))

    @staticmethod
    def _fill_child(current: Any, incoming: Any) -> Any:
        """Fill empty attributes of ``current`` from ``incoming``."""
        updates = {
            name: getattr(incoming, name)
            for name in type(current).model_fields
            if is_empty(getattr(current, name)) and not is_empty(getattr(incoming, name))
        }
        return current.model_copy(update=updates) if updates else current
