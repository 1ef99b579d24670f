"""GistStore - zero-infrastructure team analysis history via GitHub Gist.

Data format: a single JSON file named `commitlens_history.json` inside the
Gist. The file contains a JSON array of AnalysisRecord dicts, newest entries
appended. Any team member can read it back with
`commitlens history --repo owner/repo`.
"""

from __future__ import annotations

import json
import logging
import os
import uuid

from commitlens_store.base import BaseStore, matches, utc_timestamp
from commitlens_store.models import AnalysisRecord

logger = logging.getLogger(__name__)

_GIST_FILENAME = "commitlens_history.json"


class GistStore(BaseStore):
    """Stores analysis history in a GitHub Gist as an append-only JSON array.

    Each save() appends one AnalysisRecord to the Gist file. list_analyses()
    reads the full array and filters in memory - suitable for teams with
    hundreds or low thousands of records. For larger histories, switch to
    SQLiteStore.

    The Gist ID is stored in .commitlens.yml under `gist_id`. Running
    `commitlens init` creates the Gist and writes the ID to .commitlens.yml.
    """

    def __init__(self, gist_id: str, token: str, client=None):
        if client is None:
            from github import Github

            client = Github(token)
        self._gist_id = gist_id
        self._gh = client

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def save(self, record: AnalysisRecord) -> str:
        """Append an analysis record to the Gist JSON file.

        Returns the record id, or "" if the write failed.
        """
        record.id = record.id or uuid.uuid4().hex
        try:
            gist = self._get_gist()
            existing = self._read_records(gist)
            existing.append(record.to_dict())
            gist.edit(files={_GIST_FILENAME: {"content": json.dumps(existing, indent=2)}})
        except Exception as e:
            # The analysis was already printed; persistence is best effort.
            logger.warning("GistStore.save() failed (%s): %s", type(e).__name__, e)
            msg = f"Warning: could not persist analysis history to Gist ({type(e).__name__}: {e})"
            if os.environ.get("GITHUB_ACTIONS") == "true":
                msg += (
                    "\nThe built-in GITHUB_TOKEN does not have Gist permissions. "
                    "Use a PAT with 'gist' scope stored as a repository secret."
                )
            print(msg)
            return ""
        return record.id

    def list_analyses(
        self,
        repo: str,
        commit_sha: str | None = None,
        file_path: str | None = None,
        since: str | None = None,
        until: str | None = None,
    ) -> list[AnalysisRecord]:
        """Return analysis records for a repo, filtered in memory."""
        try:
            gist = self._get_gist()
            records = self._read_records(gist)
        except Exception as e:
            logger.warning("GistStore.list_analyses() failed: %s", e)
            return []

        results = [AnalysisRecord.from_dict(r) for r in records if isinstance(r, dict) and r.get("repo") == repo]
        results = [r for r in results if matches(r, commit_sha, file_path, since, until)]
        return sorted(results, key=lambda r: utc_timestamp(r.committed_at))

    def _read_records(self, gist) -> list[dict]:
        """Read the current JSON array from the Gist file, or return []."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return []
        try:
            data = json.loads(file_obj.content) or []
        except (json.JSONDecodeError, AttributeError, TypeError):
            return []
        return data if isinstance(data, list) else []
