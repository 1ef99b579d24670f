"""Structured tiers: find a JSON object in a reply and map it onto criteria.

extract_json_object() locates a candidate object (fenced block first, then a
bare object found by brace balancing), parses it, and falls back to the
repair rules when plain parsing fails. reconcile() reads the current shape
(one entry per criterion) and the legacy shape (clean-code subcriteria only)
into CriterionScore values.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator

from commitlens_core.analysis.models import Criterion, CriterionScore, SubcriterionScore
from commitlens_core.analysis.repair import RepairRule, repair_json
from commitlens_core.analysis.scores import normalize_score, round_half_up
from commitlens_core.analysis.vocabulary import (
    COMMENT_KEYS,
    CRITERION_KEYS,
    OVERALL_COMMENT_KEYS,
    REFACTORING_KEYS,
    SCORE_KEYS,
    SUBCRITERIA_CONTAINER_KEYS,
    SUBCRITERION_KEYS,
    WRAPPER_KEYS,
    canonical_key,
    find_key,
    lookup,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[ \t]*(?:json|JSON|javascript|js)?[ \t]*\n?(.*?)(?:```|$)", re.DOTALL)
_LEADING_SCORE_RE = re.compile(r"^\s*[-+]?\d+(?:[.,]\d+)?\s*(?:/\s*\d+(?:[.,]\d+)?)?\s*%?\s*[-–—:|)]?\s*")
_NAME_KEYS = frozenset(canonical_key(k) for k in ("name", "nome", "criterion", "criterio", "critério"))

_MAX_CANDIDATES = 20


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _balanced_object(text: str, start: int) -> str:
    """Return the object starting at text[start] ("{"), or the rest of the text if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return text[start:]


def _bare_objects(text: str) -> Iterator[str]:
    pos = text.find("{")
    while pos != -1:
        candidate = _balanced_object(text, pos)
        yield candidate
        end = pos + len(candidate)
        if end >= len(text):
            return
        pos = text.find("{", end)


def find_json_candidates(text: str) -> list[str]:
    """Return candidate object texts, fenced blocks before bare objects."""
    candidates: list[str] = []
    for match in _FENCE_RE.finditer(text):
        body = match.group(1).strip()
        brace = body.find("{")
        if brace != -1:
            candidates.append(_balanced_object(body, brace))
    candidates.extend(_bare_objects(text))

    seen: set[str] = set()
    unique = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            unique.append(c)
    return unique[:_MAX_CANDIDATES]


def _loads_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(value, list):
        value = next((item for item in value if isinstance(item, dict)), None)
    return value if isinstance(value, dict) else None


def parse_candidate(candidate: str, rules: Iterable[RepairRule] | None = None) -> dict | None:
    """Parse candidate as-is, then once more after the repair rules."""
    obj = _loads_object(candidate)
    if obj is not None:
        return obj
    repaired = repair_json(candidate, rules)
    obj = _loads_object(repaired)
    if obj is not None:
        logger.debug("Parsed JSON after repair (%d chars)", len(candidate))
    return obj


def _is_recognised(obj: dict) -> bool:
    known = set(CRITERION_KEYS) | set(SUBCRITERION_KEYS) | WRAPPER_KEYS | OVERALL_COMMENT_KEYS | REFACTORING_KEYS
    return any(canonical_key(k) in known for k in obj)


def extract_json_object(text: str, rules: Iterable[RepairRule] | None = None) -> dict | None:
    """Return the first parsable object that uses known keys, else the first parsable object."""
    rules = tuple(rules) if rules is not None else None
    first: dict | None = None
    for candidate in find_json_candidates(text):
        obj = parse_candidate(candidate, rules)
        if obj is None:
            continue
        if _is_recognised(obj):
            return obj
        if first is None:
            first = obj
    return first


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def _split_scored_text(text: str) -> tuple[str | None, str]:
    """Split "8/10 - tidy code" into ("8/10 - ", "tidy code")."""
    match = _LEADING_SCORE_RE.match(text)
    if match:
        return text[: match.end()], text[match.end() :].strip()
    return None, text.strip()


def _read_scored(value) -> tuple[int, str] | None:
    """Read a score and comment from a dict, a bare number or a "score - comment" string."""
    if isinstance(value, dict):
        raw = find_key(value, SCORE_KEYS)
        if raw is None:
            return None
        comment = find_key(value, COMMENT_KEYS)
        return normalize_score(raw), str(comment).strip() if comment is not None else ""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return normalize_score(value), ""
    if isinstance(value, str):
        raw, comment = _split_scored_text(value)
        if raw is None:
            return None
        return normalize_score(raw), comment
    return None


def _read_subcriteria(value: dict, keep_names: bool = False) -> dict[str, SubcriterionScore]:
    subs: dict[str, SubcriterionScore] = {}
    for key, raw in value.items():
        name = lookup(SUBCRITERION_KEYS, key)
        if name is None and not keep_names:
            continue
        scored = _read_scored(raw)
        if scored is None:
            continue
        subs[str(key) if keep_names else name] = SubcriterionScore(score=scored[0], comment=scored[1])
    return subs


def _read_criterion(value) -> CriterionScore | None:
    """Read one criterion entry.

    An object without its own score but with scored subcriteria gets the
    rounded mean of those subcriteria.
    """
    scored = _read_scored(value)
    subs: dict[str, SubcriterionScore] = {}
    if isinstance(value, dict):
        container = find_key(value, SUBCRITERIA_CONTAINER_KEYS)
        if isinstance(container, dict):
            subs.update(_read_subcriteria(container, keep_names=True))
        subs.update(_read_subcriteria(value))
    if scored is None:
        if not subs:
            return None
        comment = find_key(value, COMMENT_KEYS)
        mean = sum(s.score for s in subs.values()) / len(subs)
        scored = round_half_up(mean), str(comment).strip() if comment is not None else ""
    return CriterionScore(score=scored[0], comment=scored[1], subcriteria=subs)


def _criteria_from_list(items: list) -> dict:
    """[{"name": "SOLID", "score": 7}, …] → {"SOLID": {"score": 7, …}}"""
    mapped = {}
    for item in items:
        if isinstance(item, dict):
            name = find_key(item, _NAME_KEYS)
            if isinstance(name, str):
                mapped[name] = item
    return mapped


def criteria_container(obj: dict) -> dict:
    """Return the mapping that holds the criteria: a wrapper value or the root."""
    for key, value in obj.items():
        if canonical_key(key) not in WRAPPER_KEYS:
            continue
        if isinstance(value, list):
            value = _criteria_from_list(value)
        if isinstance(value, dict) and any(
            lookup(CRITERION_KEYS, k) or lookup(SUBCRITERION_KEYS, k) for k in value
        ):
            return value
    return obj


def is_legacy_shape(container: dict) -> bool:
    has_criterion = any(lookup(CRITERION_KEYS, k) for k in container)
    has_subcriterion = any(lookup(SUBCRITERION_KEYS, k) for k in container)
    return has_subcriterion and not has_criterion


def _legacy_clean_code(container: dict, comment: str) -> CriterionScore | None:
    subs = {
        str(key): sub
        for key, sub in _read_subcriteria(container, keep_names=True).items()
        if lookup(SUBCRITERION_KEYS, key)
    }
    if not subs:
        return None
    mean = sum(s.score for s in subs.values()) / len(subs)
    return CriterionScore(score=round_half_up(mean), comment=comment, subcriteria=subs)


def overall_comment(obj: dict) -> str | None:
    """Return the explicit general comment of a reply object, if any."""
    for source in (obj, criteria_container(obj)):
        value = find_key(source, OVERALL_COMMENT_KEYS)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def reconcile(obj: dict) -> dict[str, CriterionScore]:
    """Map a parsed reply onto criterion scores.

    Only criteria whose score could be read are returned; the caller fills
    in placeholders for the rest.
    """
    container = criteria_container(obj)

    if is_legacy_shape(container):
        clean_code = _legacy_clean_code(container, overall_comment(obj) or "")
        logger.debug("Reply uses the legacy subcriteria shape")
        return {Criterion.CLEAN_CODE.value: clean_code} if clean_code else {}

    criteria: dict[str, CriterionScore] = {}
    for key, value in container.items():
        name = lookup(CRITERION_KEYS, key)
        if name is None or name in criteria:
            continue
        criterion = _read_criterion(value)
        if criterion is not None:
            criteria[name] = criterion
    return criteria
