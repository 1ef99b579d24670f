"""GitHub adapter built on PyGithub, for repositories without a local clone."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from github import Github, GithubException

from commitlens_core.vcs.base import BaseRepository, ChangedPath, ChangeKind, CommitInfo

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    "added": ChangeKind.ADDED,
    "copied": ChangeKind.ADDED,
    "modified": ChangeKind.MODIFIED,
    "changed": ChangeKind.MODIFIED,
    "removed": ChangeKind.DELETED,
    "renamed": ChangeKind.RENAMED,
}


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def _to_commit_info(commit) -> CommitInfo:
    author = commit.commit.author
    date = author.date.isoformat() if author and author.date else ""
    return CommitInfo(
        sha=commit.sha,
        author=author.name if author else "",
        email=author.email if author else "",
        date=date,
        message=commit.commit.message or "",
    )


class GitHubRepository(BaseRepository):
    """Reads history through the GitHub REST API.

    Commit objects are cached per revision: one analysis touches the same
    commit several times (metadata, parent, files) and each lookup is an
    API call.
    """

    def __init__(self, repo_name: str, token: str | None = None, repo_obj=None):
        self.name = repo_name
        self._repo = repo_obj if repo_obj is not None else get_repo(repo_name, token=token)
        self._commits: dict[str, object] = {}

    def _commit(self, revision: str):
        if revision not in self._commits:
            self._commits[revision] = self._repo.get_commit(revision)
        return self._commits[revision]

    def get_commit(self, revision: str) -> CommitInfo:
        return _to_commit_info(self._commit(revision))

    def get_parent_revision(self, revision: str) -> str | None:
        parents = self._commit(revision).parents
        return parents[0].sha if parents else None

    def get_changed_paths(self, revision: str) -> list[ChangedPath]:
        changes = []
        for f in self._commit(revision).files:
            kind = _STATUS_KINDS.get(f.status)
            if kind is None:
                logger.debug("Ignoring %s with status %s", f.filename, f.status)
                continue
            old_path = f.previous_filename if kind is ChangeKind.RENAMED else None
            changes.append(ChangedPath(path=f.filename, change_kind=kind, old_path=old_path))
        return changes

    def get_file_content_at_revision(self, revision: str, path: str) -> str | None:
        try:
            contents = self._repo.get_contents(path, ref=revision)
        except GithubException as e:
            if e.status == 404:
                return None
            raise
        if isinstance(contents, list):
            return None
        return contents.decoded_content.decode("utf-8", errors="replace")

    def get_file_diff(self, revision: str, path: str) -> str:
        for f in self._commit(revision).files:
            if f.filename == path:
                return f.patch or ""
        return ""

    def list_recent_commits(self, since_hours: int = 24) -> list[CommitInfo]:
        since = datetime.now(timezone.utc) - timedelta(hours=since_hours)
        return [_to_commit_info(c) for c in self._repo.get_commits(since=since)]
