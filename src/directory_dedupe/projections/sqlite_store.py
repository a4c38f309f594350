"""SQLite-backed record and draft stores."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from ..exceptions import NotFoundError
from ..logging import get_logger
from ..models import CandidateRecord, Draft, DraftStatus, ExistingRecord, ListingFields
from ..ports import PoolHints
from ..utils.normalize import normalize_phone, normalize_state, normalize_url

logger = get_logger(__name__)


def _index_columns(record: ListingFields) -> tuple[str, str, str, str, int]:
    return (
        normalize_state(record.state),
        (record.external_id or "").strip(),
        normalize_phone(record.phone),
        normalize_url(record.website),
        int(record.has_coordinates),
    )


class SQLiteDirectoryStore:
    """SQLite implementation of both RecordStore and DraftStore.

    Responsibilities:
    - Canonical listings with indexed match keys for candidate-pool retrieval
    - Drafts with compare-and-set status transitions:
      * ``UPDATE ... WHERE draft_id = ? AND status = ?`` and a rowcount check
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _get_conn(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA busy_timeout=5000;")
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_conn() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS records (
                    record_id TEXT PRIMARY KEY,
                    norm_state TEXT NOT NULL DEFAULT '',
                    external_id TEXT NOT NULL DEFAULT '',
                    norm_phone TEXT NOT NULL DEFAULT '',
                    domain TEXT NOT NULL DEFAULT '',
                    located INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    full_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_records_state ON records(norm_state);
                CREATE INDEX IF NOT EXISTS idx_records_external ON records(external_id);
                CREATE INDEX IF NOT EXISTS idx_records_phone ON records(norm_phone);
                CREATE INDEX IF NOT EXISTS idx_records_domain ON records(domain);

                CREATE TABLE IF NOT EXISTS drafts (
                    draft_id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    source TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    full_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_drafts_status ON drafts(status);
                CREATE INDEX IF NOT EXISTS idx_drafts_source ON drafts(source);
                """
            )
            conn.commit()

    @contextmanager
    def transaction(self):
        with self._get_conn() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    # --------------------------- Records -----------------------------

    def _write_record(self, conn: sqlite3.Connection, record: ExistingRecord) -> None:
        conn.execute(
            """
            INSERT INTO records (
                record_id, norm_state, external_id, norm_phone, domain, located, updated_at, full_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(record_id) DO UPDATE SET
                norm_state = excluded.norm_state,
                external_id = excluded.external_id,
                norm_phone = excluded.norm_phone,
                domain = excluded.domain,
                located = excluded.located,
                updated_at = excluded.updated_at,
                full_json = excluded.full_json
            """,
            (
                record.record_id,
                *_index_columns(record),
                datetime.now(UTC).isoformat(),
                record.model_dump_json(),
            ),
        )

    def put(self, record: ExistingRecord) -> ExistingRecord:
        """Insert or replace a listing under its own id (seeding)."""
        with self.transaction() as conn:
            self._write_record(conn, record)
        return record

    def list_candidate_pool(self, hints: PoolHints) -> list[ExistingRecord]:
        query = """
            SELECT full_json FROM records
            WHERE ? = '' OR norm_state = '' OR norm_state = ?
               OR ? = 0 OR located = 0
               OR (external_id != '' AND external_id = ?)
               OR (norm_phone != '' AND norm_phone = ?)
               OR (domain != '' AND domain = ?)
            ORDER BY record_id
        """
        params = (
            hints.state,
            hints.state,
            int(hints.located),
            hints.external_id,
            hints.phone,
            hints.domain,
        )
        with self._get_conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [ExistingRecord.model_validate_json(row["full_json"]) for row in rows]

    def create_canonical(self, payload: CandidateRecord) -> ExistingRecord:
        with self.transaction() as conn:
            row = conn.execute(
                """
                SELECT COALESCE(MAX(CAST(record_id AS INTEGER)), 0) + 1 AS next_id
                FROM records
                WHERE record_id != '' AND record_id NOT GLOB '*[^0-9]*'
                """
            ).fetchone()
            record = ExistingRecord(record_id=str(row["next_id"]), **payload.model_dump())
            self._write_record(conn, record)
        logger.info("record.created", record_id=record.record_id)
        return record

    def get_by_id(self, record_id: str) -> ExistingRecord | None:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT full_json FROM records WHERE record_id = ?", (str(record_id),)
            ).fetchone()
            if row is None:
                return None
            return ExistingRecord.model_validate_json(row["full_json"])

    def update_record(self, record: ExistingRecord) -> ExistingRecord:
        with self.transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM records WHERE record_id = ?", (record.record_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError("record", record.record_id)
            self._write_record(conn, record)
        return record

    def count_records(self) -> int:
        with self._get_conn() as conn:
            return conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]

    # ---------------------------- Drafts -----------------------------

    @staticmethod
    def _draft_params(draft: Draft) -> tuple:
        return (
            draft.status.value,
            draft.source,
            draft.version,
            draft.created_at.isoformat(),
            draft.updated_at.isoformat(),
            draft.model_dump_json(),
        )

    def add(self, draft: Draft) -> Draft:
        with self._get_conn() as conn:
            conn.execute(
                """
                INSERT INTO drafts (draft_id, status, source, version, created_at, updated_at, full_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (draft.draft_id, *self._draft_params(draft)),
            )
            conn.commit()
        return draft

    def get(self, draft_id: str) -> Draft | None:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT full_json FROM drafts WHERE draft_id = ?", (draft_id,)
            ).fetchone()
            if row is None:
                return None
            return Draft.model_validate_json(row["full_json"])

    def save(self, draft: Draft) -> Draft:
        with self._get_conn() as conn:
            cur = conn.execute(
                """
                UPDATE drafts
                SET status = ?, source = ?, version = ?, created_at = ?, updated_at = ?, full_json = ?
                WHERE draft_id = ?
                """,
                (*self._draft_params(draft), draft.draft_id),
            )
            conn.commit()
            if cur.rowcount == 0:
                raise NotFoundError("draft", draft.draft_id)
        return draft

    def compare_and_set(self, draft: Draft, expected_status: DraftStatus) -> bool:
        with self._get_conn() as conn:
            cur = conn.execute(
                """
                UPDATE drafts
                SET status = ?, source = ?, version = ?, created_at = ?, updated_at = ?, full_json = ?
                WHERE draft_id = ? AND status = ?
                """,
                (*self._draft_params(draft), draft.draft_id, expected_status.value),
            )
            conn.commit()
            return cur.rowcount == 1

    def list(
        self,
        status: DraftStatus | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[Draft]:
        conditions = []
        params: list = []

        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)
        if source is not None:
            conditions.append("source = ?")
            params.append(source)

        where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""
        query = f"SELECT full_json FROM drafts {where_clause} ORDER BY created_at, draft_id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._get_conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [Draft.model_validate_json(row["full_json"]) for row in rows]
