"""No-op store - the default when no store is configured.

Analyses are printed but not persisted anywhere. Using a NoOpStore rather
than None lets the CLI always call store.save() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from commitlens_store.base import BaseStore

if TYPE_CHECKING:
    from commitlens_store.models import AnalysisRecord


class NoOpStore(BaseStore):
    """Silently discards all records - zero configuration required.

    Teams that want history and stats switch to GistStore (commitlens init)
    or SQLiteStore (.commitlens.yml: store: sqlite).
    """

    def save(self, record: AnalysisRecord) -> str:
        return ""

    def list_analyses(
        self,
        repo: str,
        commit_sha: str | None = None,
        file_path: str | None = None,
        since: str | None = None,
        until: str | None = None,
    ) -> list[AnalysisRecord]:
        return []
