"""Line-oriented diff between two revisions of a text file.

compute_diff() aligns the two versions on their longest common subsequence
of lines and reports every line as unchanged, removed or added:

    original, modified → TextBlock (truncate) → LCS table → backward walk
                       → forward emission (removed, added, unchanged)

The result is a flat, ordered list of DiffEntry values. Reading only the
unchanged and removed entries gives back the (truncated) original; reading
only the unchanged and added entries gives back the (truncated) modified
text. render_diff() turns the list into the prefixed text sent to the model.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

MAX_CHARS = 100_000
MAX_LINES = 1_000
TRUNCATION_MARKER = "... [content truncated]"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class DiffKind(str, Enum):
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    ADDED = "added"


_PREFIX = {
    DiffKind.UNCHANGED: "  ",
    DiffKind.REMOVED: "- ",
    DiffKind.ADDED: "+ ",
}


@dataclass(frozen=True)
class DiffEntry:
    kind: DiffKind
    text: str


@dataclass(frozen=True)
class TextBlock:
    """A text split into lines after the size limits have been applied."""

    lines: tuple[str, ...]
    truncated: bool = False

    @classmethod
    def from_text(cls, text: str, max_chars: int = MAX_CHARS, max_lines: int = MAX_LINES) -> TextBlock:
        """Split text into lines, cutting it at max_chars and then at max_lines.

        When either limit cuts the text a single TRUNCATION_MARKER line is
        appended, so both sides of a diff carry the marker as an ordinary line.
        """
        if not text:
            return cls(lines=())

        truncated = False
        if len(text) > max_chars:
            text = text[:max_chars]
            truncated = True

        lines = split_lines(text)
        if len(lines) > max_lines:
            lines = lines[:max_lines]
            truncated = True

        if truncated:
            lines.append(TRUNCATION_MARKER)
        return cls(lines=tuple(lines), truncated=truncated)


def split_lines(text: str) -> list[str]:
    """Split on CRLF, CR or LF. A final line break does not open an empty line."""
    if not text:
        return []
    lines = _LINE_BREAK_RE.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def compute_diff(
    original: str,
    modified: str,
    max_chars: int = MAX_CHARS,
    max_lines: int = MAX_LINES,
) -> list[DiffEntry]:
    """Return the ordered line diff between original and modified.

    Never raises: an unexpected failure is logged and yields an empty list.
    """
    try:
        old = TextBlock.from_text(original, max_chars, max_lines).lines
        new = TextBlock.from_text(modified, max_chars, max_lines).lines
        return _diff_lines(old, new)
    except Exception as e:
        logger.warning(
            "compute_diff failed (original=%d chars, modified=%d chars): %s",
            len(original or ""),
            len(modified or ""),
            e,
        )
        return []


def _diff_lines(old: tuple[str, ...], new: tuple[str, ...]) -> list[DiffEntry]:
    if not old:
        return [DiffEntry(DiffKind.ADDED, line) for line in new]
    if not new:
        return [DiffEntry(DiffKind.REMOVED, line) for line in old]

    entries: list[DiffEntry] = []
    i = j = 0
    for old_index, new_index in _lcs_pairs(old, new):
        entries.extend(DiffEntry(DiffKind.REMOVED, line) for line in old[i:old_index])
        entries.extend(DiffEntry(DiffKind.ADDED, line) for line in new[j:new_index])
        entries.append(DiffEntry(DiffKind.UNCHANGED, old[old_index]))
        i, j = old_index + 1, new_index + 1

    entries.extend(DiffEntry(DiffKind.REMOVED, line) for line in old[i:])
    entries.extend(DiffEntry(DiffKind.ADDED, line) for line in new[j:])
    return entries


def _lcs_pairs(old: tuple[str, ...], new: tuple[str, ...]) -> list[tuple[int, int]]:
    """Return the (old, new) index pairs of one longest common subsequence.

    lengths[i][j] holds the LCS length of old[:i] and new[:j]. The walk back
    from the bottom-right corner steps toward the larger neighbour; on a tie it
    consumes the original line, which reports that line as removed.
    """
    n, m = len(old), len(new)
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        row, prev = lengths[i], lengths[i - 1]
        old_line = old[i - 1]
        for j in range(1, m + 1):
            if old_line == new[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = prev[j] if prev[j] >= row[j - 1] else row[j - 1]

    pairs: list[tuple[int, int]] = []
    i, j = n, m
    while i > 0 and j > 0:
        if old[i - 1] == new[j - 1]:
            pairs.append((i - 1, j - 1))
            i -= 1
            j -= 1
        elif lengths[i - 1][j] >= lengths[i][j - 1]:
            i -= 1
        else:
            j -= 1
    pairs.reverse()
    return pairs


def render_diff(entries: list[DiffEntry]) -> str:
    """Render entries as text with "- ", "+ " and "  " line prefixes."""
    return "\n".join(_PREFIX[entry.kind] + entry.text for entry in entries)


def diff_stats(entries: list[DiffEntry]) -> tuple[int, int]:
    """Return (lines added, lines removed)."""
    added = sum(1 for e in entries if e.kind is DiffKind.ADDED)
    removed = sum(1 for e in entries if e.kind is DiffKind.REMOVED)
    return added, removed
