"""SQLiteStore - local file-based store for single-developer workflows and CI caching.

Schema:
  analyses - one row per analysed file of a commit. Criterion scores and the
             refactoring proposal are kept as JSON columns so read paths
             never need JOINs.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from commitlens_store.base import BaseStore, utc_timestamp
from commitlens_store.models import AnalysisRecord, CriterionRecord, RefactoringRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS analyses (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    repo             TEXT NOT NULL,
    commit_sha       TEXT NOT NULL,
    file_path        TEXT NOT NULL,
    author           TEXT,
    committed_at     TEXT,
    committed_utc    TEXT,
    analyzed_at      TEXT,
    model            TEXT,
    change_kind      TEXT,
    lines_added      INTEGER DEFAULT 0,
    lines_removed    INTEGER DEFAULT 0,
    overall_score    INTEGER DEFAULT 0,
    overall_comment  TEXT,
    criteria_json    TEXT DEFAULT '[]',
    refactoring_json TEXT
);
CREATE INDEX IF NOT EXISTS idx_analyses_repo   ON analyses (repo);
CREATE INDEX IF NOT EXISTS idx_analyses_commit ON analyses (repo, commit_sha);
CREATE INDEX IF NOT EXISTS idx_analyses_file   ON analyses (repo, file_path);
"""

_DATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_analyses_date   ON analyses (repo, committed_utc);
"""


class SQLiteStore(BaseStore):
    """Stores analysis history in a local SQLite database file.

    The database file path defaults to `.commitlens.db` in the current working
    directory. Configure via .commitlens.yml: `store_path: /path/to/commitlens.db`.
    """

    def __init__(self, db_path: str = ".commitlens.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._add_utc_column()
        self._conn.executescript(_DATE_INDEX)
        self._conn.commit()

    def _add_utc_column(self) -> None:
        """Add and backfill committed_utc on databases created before it existed."""
        columns = {row["name"] for row in self._conn.execute("PRAGMA table_info(analyses)")}
        if "committed_utc" in columns:
            return
        self._conn.execute("ALTER TABLE analyses ADD COLUMN committed_utc TEXT")
        rows = self._conn.execute("SELECT id, committed_at FROM analyses").fetchall()
        self._conn.executemany(
            "UPDATE analyses SET committed_utc=? WHERE id=?",
            [(utc_timestamp(row["committed_at"] or ""), row["id"]) for row in rows],
        )

    def save(self, record: AnalysisRecord) -> str:
        criteria_json = json.dumps([c.to_dict() for c in record.criteria])
        refactoring_json = json.dumps(record.refactoring.to_dict()) if record.refactoring else None
        cursor = self._conn.execute(
            """
            INSERT INTO analyses
              (repo, commit_sha, file_path, author, committed_at, committed_utc, analyzed_at,
               model, change_kind, lines_added, lines_removed, overall_score,
               overall_comment, criteria_json, refactoring_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.repo,
                record.commit_sha,
                record.file_path,
                record.author,
                record.committed_at,
                utc_timestamp(record.committed_at),
                record.analyzed_at,
                record.model,
                record.change_kind,
                record.lines_added,
                record.lines_removed,
                record.overall_score,
                record.overall_comment,
                criteria_json,
                refactoring_json,
            ),
        )
        self._conn.commit()
        record.id = str(cursor.lastrowid)
        return record.id

    def list_analyses(
        self,
        repo: str,
        commit_sha: str | None = None,
        file_path: str | None = None,
        since: str | None = None,
        until: str | None = None,
    ) -> list[AnalysisRecord]:
        clauses = ["repo=?"]
        params: list = [repo]
        if commit_sha is not None:
            clauses.append("commit_sha=?")
            params.append(commit_sha)
        if file_path is not None:
            clauses.append("file_path=?")
            params.append(file_path)
        if since is not None:
            clauses.append("committed_utc>=?")
            params.append(utc_timestamp(since))
        if until is not None:
            clauses.append("committed_utc<=?")
            params.append(utc_timestamp(until, end_of_day=True))

        query = f"SELECT * FROM analyses WHERE {' AND '.join(clauses)} ORDER BY committed_utc, id"
        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.warning("SQLiteStore.list_analyses() failed: %s", e)
            return []

        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AnalysisRecord:
        criteria = [CriterionRecord.from_dict(c) for c in json.loads(row["criteria_json"] or "[]")]
        refactoring_data = json.loads(row["refactoring_json"]) if row["refactoring_json"] else None
        return AnalysisRecord(
            id=str(row["id"]),
            repo=row["repo"],
            commit_sha=row["commit_sha"],
            file_path=row["file_path"],
            author=row["author"] or "",
            committed_at=row["committed_at"] or "",
            analyzed_at=row["analyzed_at"] or "",
            model=row["model"] or "",
            change_kind=row["change_kind"] or "modified",
            lines_added=row["lines_added"],
            lines_removed=row["lines_removed"],
            overall_score=row["overall_score"],
            overall_comment=row["overall_comment"] or "",
            criteria=criteria,
            refactoring=RefactoringRecord.from_dict(refactoring_data) if refactoring_data else None,
        )
