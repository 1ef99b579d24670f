"""Version-control adapter interface.

The pipeline only needs a handful of read operations: which paths a commit
touched, the content of a path at a revision, and commit metadata. Local
clones (git CLI) and GitHub (REST API) both implement BaseRepository so the
pipeline never knows where the history lives.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class ChangedPath:
    path: str
    change_kind: ChangeKind
    old_path: str | None = None


@dataclass(frozen=True)
class CommitInfo:
    sha: str
    author: str
    email: str
    date: str  # ISO-8601
    message: str


class BaseRepository(ABC):
    """Read-only access to a repository's history."""

    #: Human-readable identifier used as the store key ("owner/name" or a local path).
    name: str = ""

    @abstractmethod
    def get_commit(self, revision: str) -> CommitInfo:
        """Return metadata for a revision."""

    @abstractmethod
    def get_parent_revision(self, revision: str) -> str | None:
        """Return the first parent of revision, or None for a root commit."""

    @abstractmethod
    def get_changed_paths(self, revision: str) -> list[ChangedPath]:
        """Return the paths revision changed relative to its first parent."""

    @abstractmethod
    def get_file_content_at_revision(self, revision: str, path: str) -> str | None:
        """Return the content of path at revision, or None if it does not exist there."""

    @abstractmethod
    def get_file_diff(self, revision: str, path: str) -> str:
        """Return the unified diff of path introduced by revision."""

    @abstractmethod
    def list_recent_commits(self, since_hours: int = 24) -> list[CommitInfo]:
        """Return commits made within the last since_hours, newest first."""
