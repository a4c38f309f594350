"""SQLite persistence for listings and drafts."""
from __future__ import annotations

from .sqlite_store import SQLiteDirectoryStore

__all__ = ["SQLiteDirectoryStore"]
