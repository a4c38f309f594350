"""Merge a submission into an existing listing."""

from .resolver import CHILD_COLLECTIONS, MergeOutcome, MergeResolver

__all__ = ["CHILD_COLLECTIONS", "MergeOutcome", "MergeResolver"]
