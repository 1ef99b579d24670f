"""Local clone adapter built on the git command line."""

from __future__ import annotations

import logging
import os
import subprocess

from commitlens_core.errors import GitError
from commitlens_core.vcs.base import BaseRepository, ChangedPath, ChangeKind, CommitInfo

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_COMMIT_FORMAT = _FIELD_SEP.join(("%H", "%an", "%ae", "%aI", "%B"))

_STATUS_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.ADDED,
    "T": ChangeKind.MODIFIED,
}


def _run_git(args: list[str], cwd: str | None = None) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the completed process, raising GitError on failure."""
    cmd = ["git", *args]
    logger.debug("Running git command: %s", " ".join(cmd))
    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise GitError(f"failed to execute git: {e}") from e

    if completed.returncode != 0:
        stderr = (completed.stderr or "").strip()
        raise GitError(f"git command failed: {' '.join(cmd)}: {stderr}")
    return completed


def _parse_commit(record: str) -> CommitInfo:
    sha, author, email, date, message = record.split(_FIELD_SEP, 4)
    return CommitInfo(sha=sha.strip(), author=author, email=email, date=date, message=message.strip())


def parse_name_status(output: str) -> list[ChangedPath]:
    """Parse `git diff --name-status` output."""
    changes = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split("\t")
        kind = _STATUS_KINDS.get(fields[0][:1])
        if kind is None:
            logger.debug("Ignoring unknown git status line: %s", line)
            continue
        if kind is ChangeKind.RENAMED and len(fields) >= 3:
            changes.append(ChangedPath(path=fields[2], change_kind=kind, old_path=fields[1]))
        elif fields[0].startswith("C") and len(fields) >= 3:
            changes.append(ChangedPath(path=fields[2], change_kind=kind))
        else:
            changes.append(ChangedPath(path=fields[-1], change_kind=kind))
    return changes


class LocalGitRepository(BaseRepository):
    """Reads history from a working copy through the git CLI."""

    def __init__(self, path: str = "."):
        self.path = path
        top = _run_git(["rev-parse", "--show-toplevel"], cwd=path).stdout.strip()
        self.name = os.path.basename(top) or top

    def _git(self, args: list[str]) -> str:
        return _run_git(args, cwd=self.path).stdout

    def get_commit(self, revision: str) -> CommitInfo:
        return _parse_commit(self._git(["show", "-s", f"--format={_COMMIT_FORMAT}", revision]))

    def get_parent_revision(self, revision: str) -> str | None:
        try:
            return self._git(["rev-parse", "--verify", "--quiet", f"{revision}^"]).strip() or None
        except GitError:
            # Root commit: no parent.
            return None

    def get_changed_paths(self, revision: str) -> list[ChangedPath]:
        parent = self.get_parent_revision(revision)
        if parent:
            output = self._git(["diff", "--name-status", "--find-renames", parent, revision])
        else:
            output = self._git(["diff-tree", "--root", "--no-commit-id", "-r", "--name-status", revision])
        return parse_name_status(output)

    def get_file_content_at_revision(self, revision: str, path: str) -> str | None:
        try:
            return self._git(["show", f"{revision}:{path}"])
        except GitError:
            return None

    def get_file_diff(self, revision: str, path: str) -> str:
        parent = self.get_parent_revision(revision)
        if parent:
            return self._git(["diff", parent, revision, "--", path])
        return self._git(["show", "--format=", revision, "--", path])

    def list_recent_commits(self, since_hours: int = 24) -> list[CommitInfo]:
        output = self._git(["log", f"--since={since_hours} hours ago", f"--format={_COMMIT_FORMAT}{_RECORD_SEP}"])
        return [_parse_commit(record) for record in output.split(_RECORD_SEP) if record.strip()]
