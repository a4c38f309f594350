"""In-process store adapters."""

from .memory import InMemoryDraftStore, InMemoryRecordStore

__all__ = ["InMemoryDraftStore", "InMemoryRecordStore"]
