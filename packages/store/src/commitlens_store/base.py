"""Abstract store interface.

Any team-specific storage backend (Gist, SQLite, Postgres, S3) implements
this interface. The CLI depends on BaseStore rather than a concrete backend,
so backends are swappable without touching CLI code.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitlens_store.models import AnalysisRecord

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class BaseStore(ABC):
    """Pluggable persistence layer for analysis history.

    Implementations must be safe to call from CI environments where no
    interactive credentials are available - all auth must happen via
    constructor arguments or environment variables resolved at init time.
    """

    @abstractmethod
    def save(self, record: AnalysisRecord) -> str:
        """Persist one file analysis and return its id."""

    @abstractmethod
    def list_analyses(
        self,
        repo: str,
        commit_sha: str | None = None,
        file_path: str | None = None,
        since: str | None = None,
        until: str | None = None,
    ) -> list[AnalysisRecord]:
        """Return analyses for a repo, oldest commit first.

        Optional filters: commit sha, file path, and an inclusive range of
        ISO-8601 commit dates compared in UTC. A date-only `until` covers
        the whole day. Returns an empty list if nothing matches and never
        raises.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional - subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """


def utc_timestamp(value: str, end_of_day: bool = False) -> str:
    """Normalise an ISO-8601 date or timestamp to a sortable UTC string.

    Naive timestamps are taken as UTC. A bare date means the start of that
    day, or its last microsecond with end_of_day. Unparsable values are
    returned unchanged.
    """
    text = (value or "").strip()
    try:
        if _DATE_ONLY_RE.match(text):
            moment = datetime.combine(
                date.fromisoformat(text), time.max if end_of_day else time.min, tzinfo=timezone.utc
            )
        else:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return value
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")


def matches(
    record: AnalysisRecord,
    commit_sha: str | None = None,
    file_path: str | None = None,
    since: str | None = None,
    until: str | None = None,
) -> bool:
    """In-memory filter shared by backends that cannot query."""
    if commit_sha is not None and record.commit_sha != commit_sha:
        return False
    if file_path is not None and record.file_path != file_path:
        return False
    committed = utc_timestamp(record.committed_at)
    if since is not None and committed < utc_timestamp(since):
        return False
    if until is not None and committed > utc_timestamp(until, end_of_day=True):
        return False
    return True
