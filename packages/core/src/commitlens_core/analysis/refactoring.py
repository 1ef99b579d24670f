"""Refactoring proposal extraction, from JSON or from labelled prose."""

from __future__ import annotations

import math
import re

from commitlens_core.analysis.models import DEFAULT_PRIORITY, MAX_PRIORITY, MIN_PRIORITY, RefactoringProposal
from commitlens_core.analysis.freetext import clean_line, prose_lines, section_lines
from commitlens_core.analysis.scores import parse_number, round_half_up
from commitlens_core.analysis.structured import criteria_container
from commitlens_core.analysis.vocabulary import PROPOSAL_FIELDS, PROPOSAL_LABEL, REFACTORING_KEYS, find_key, lookup

DEFAULT_TITLE = "Refactoring proposal"

_SEP = r"\s*[:\-–—]\s*"
_TITLE_LABEL = r"t[íi]tulo|title"
_DESCRIPTION_LABEL = r"descri[çc][ãa]o|description"
_ORIGINAL_CODE_LABEL = r"c[óo]digo\s+original|original\s+code"
_PROPOSED_CODE_LABEL = r"c[óo]digo\s+(?:refatorado|proposto)|refactored\s+code|proposed\s+code"
_JUSTIFICATION_LABEL = r"justificativa|justification|raz[ãa]o|reason"
_PRIORITY_LABEL = r"prioridade|priority"
_FIELD_LINE_RE = re.compile(
    rf"^(?:{_TITLE_LABEL}|{_DESCRIPTION_LABEL}|{_ORIGINAL_CODE_LABEL}|{_PROPOSED_CODE_LABEL}"
    rf"|{_JUSTIFICATION_LABEL}|{_PRIORITY_LABEL})(?![\w])",
    re.IGNORECASE,
)


def clamp_priority(raw) -> int:
    value = parse_number(raw)
    if value is None or math.isnan(value):
        return DEFAULT_PRIORITY
    return round_half_up(max(MIN_PRIORITY, min(MAX_PRIORITY, value)))


def _text(value) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _build(title, description, original_code, proposed_code, justification, priority) -> RefactoringProposal | None:
    if not any((title, description, original_code, proposed_code, justification)):
        return None
    return RefactoringProposal(
        title=title or DEFAULT_TITLE,
        description=description or "",
        original_code=original_code,
        proposed_code=proposed_code,
        justification=justification,
        priority=clamp_priority(priority),
    )


def proposal_from_json(obj: dict) -> RefactoringProposal | None:
    value = find_key(obj, REFACTORING_KEYS)
    if value is None:
        value = find_key(criteria_container(obj), REFACTORING_KEYS)
    if isinstance(value, str):
        return _build(None, _text(value), None, None, None, None)
    if not isinstance(value, dict):
        return None

    fields: dict = {}
    for key, raw in value.items():
        name = lookup(PROPOSAL_FIELDS, key)
        if name and name not in fields:
            fields[name] = raw
    return _build(
        _text(fields.get("title")),
        _text(fields.get("description")),
        _text(fields.get("original_code")),
        _text(fields.get("proposed_code")),
        _text(fields.get("justification")),
        fields.get("priority"),
    )


def _code_after(label: str, text: str) -> str | None:
    """Return the first fenced block that follows a label line."""
    pattern = re.compile(rf"(?:{label})[^\n]*\n\s*```[^\n]*\n(.*?)```", re.IGNORECASE | re.DOTALL)
    match = pattern.search(text)
    return match.group(1).rstrip() if match else None


def _labelled(label: str, lines: list[str]) -> tuple[int, str] | None:
    """Return (line index, inline value) of the first line starting with label."""
    pattern = re.compile(rf"^(?:{label})(?![\w])(?:{_SEP}(?P<value>.*))?$", re.IGNORECASE)
    for index, line in enumerate(lines):
        match = pattern.match(clean_line(line))
        if match:
            return index, (match.group("value") or "").strip()
    return None


def _field_body(lines: list[str], index: int, heading_only: bool) -> list[str]:
    """Continuation lines of a label, up to the next proposal field."""
    body = []
    for part in section_lines(lines, index, heading_only):
        if _FIELD_LINE_RE.match(part):
            break
        body.append(part)
    return body


def _labelled_text(label: str, lines: list[str]) -> str | None:
    found = _labelled(label, lines)
    if found is None:
        return None
    index, value = found
    parts = [value, *_field_body(lines, index, heading_only=not value)]
    return " ".join(p for p in parts if p).strip() or None


def proposal_from_text(text: str) -> RefactoringProposal | None:
    lines = prose_lines(text)
    header = _labelled(PROPOSAL_LABEL, lines)
    original_code = _code_after(_ORIGINAL_CODE_LABEL, text)
    proposed_code = _code_after(_PROPOSED_CODE_LABEL, text)
    if header is None and original_code is None and proposed_code is None:
        return None

    title = _labelled_text(_TITLE_LABEL, lines)
    description = _labelled_text(_DESCRIPTION_LABEL, lines)
    if header is not None:
        index, inline = header
        if not title and inline:
            title = inline
        if not description:
            description = " ".join(_field_body(lines, index, heading_only=not inline)).strip() or None

    priority = _labelled(_PRIORITY_LABEL, lines)
    return _build(
        title,
        description,
        original_code,
        proposed_code,
        _labelled_text(_JUSTIFICATION_LABEL, lines),
        priority[1] if priority else None,
    )
