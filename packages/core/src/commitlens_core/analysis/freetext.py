"""Free-text tier: read criterion scores from prose replies.

Used when a reply holds no usable JSON. Each criterion label is looked for at
the start of a line (after bullets, headings and bold markers). Recognised
forms:

    Clean Code: 8/10 - clear names
    Clean Code 8/10 clear names
    Clean Code (8/10): clear names
    Clean Code - Nota: 8 - clear names
    * Clean Code: clear names (8/10)

A label that appears without one of those forms falls back to a weaker
guess over its section: the first number in it, else the balance of positive
and negative words (70 / 30 / 50). A label that never starts a line is
searched for anywhere in the prose and gets the same guess over its sentence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from commitlens_core.analysis.models import Criterion, CriterionScore, SubcriterionScore
from commitlens_core.analysis.scores import normalize_score, parse_number, round_half_up
from commitlens_core.analysis.vocabulary import (
    CRITERION_LABELS,
    NEGATIVE_WORDS,
    OVERALL_COMMENT_LABEL,
    OVERALL_SCORE_LABEL,
    POSITIVE_WORDS,
    PROPOSAL_LABEL,
    SUBCRITERION_LABELS,
)

POSITIVE_SCORE = 70
NEGATIVE_SCORE = 30
NEUTRAL_SCORE = 50

_BULLET_RE = re.compile(r"^\s*(?:[-*+•>]|\d+[.)]\s|#{1,6})\s*")
_FENCE_LINE_RE = re.compile(r"^\s*```")
_SCORE = r"(?P<score>\d+(?:[.,]\d+)?(?:\s*/\s*\d+(?:[.,]\d+)?)?\s*%?)"
_SCORE_WORD = r"(?:nota|score|pontua[çc][ãa]o|rating)"
_SEP = r"[:\-–—|]"
_SCORE_LINE_RE = re.compile(rf"^{_SCORE_WORD}\s*[:=]?\s*{_SCORE}", re.IGNORECASE)
_COMMENT_PREFIX_RE = re.compile(r"^(?:coment[áa]rio|comment|justificativa|justification)\s*[:\-–—]\s*", re.IGNORECASE)
_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)
_NEAR_SCORE_RE = re.compile(rf"(?<![\w.]){_SCORE}(?![\w])")
_SENTENCE_END_RE = re.compile(r"[.!?](?=\s|$)|\n")


@dataclass
class _Matcher:
    paren: re.Pattern
    leading: re.Pattern
    trailing: re.Pattern
    heading: re.Pattern

    @classmethod
    def for_label(cls, label: str) -> _Matcher:
        head = rf"^(?:{label})(?![\w])\s*"
        flags = re.IGNORECASE
        return cls(
            paren=re.compile(
                head + rf"\(\s*(?:{_SCORE_WORD}\s*:?\s*)?{_SCORE}\s*\)\s*(?:{_SEP}\s*)?(?P<comment>.*)$", flags
            ),
            leading=re.compile(
                head
                + rf"(?:{_SEP}\s*)?(?:{_SCORE_WORD}\s*[:=]?\s*)?{_SCORE}(?![\w])\s*(?:[-–—:|.,]\s*)?(?P<comment>.*)$",
                flags,
            ),
            trailing=re.compile(
                head + rf"{_SEP}\s*(?P<comment>.+?)\s*\(\s*(?:{_SCORE_WORD}\s*:?\s*)?{_SCORE}\s*\)\s*\.?$", flags
            ),
            heading=re.compile(head + rf"(?:{_SEP}|\(|$)\s*(?P<comment>.*)$", flags),
        )


_CRITERION_MATCHERS = {name: _Matcher.for_label(label) for name, label in CRITERION_LABELS.items()}
_SUBCRITERION_MATCHERS = {name: _Matcher.for_label(label) for name, label in SUBCRITERION_LABELS.items()}
_OVERALL_MATCHER = _Matcher.for_label(OVERALL_COMMENT_LABEL)
_SECTION_START_RE = re.compile(
    r"^(?:"
    + "|".join(
        [*CRITERION_LABELS.values(), *SUBCRITERION_LABELS.values(), OVERALL_COMMENT_LABEL, OVERALL_SCORE_LABEL,
         PROPOSAL_LABEL]
    )
    + rf")(?![\w])\s*(?:{_SEP}|\(|$|(?:{_SCORE_WORD}\s*[:=]?\s*)?\d)",
    re.IGNORECASE,
)
_MENTION_RES = {
    name: re.compile(rf"(?<![\w])(?:{label})(?![\w])", re.IGNORECASE) for name, label in CRITERION_LABELS.items()
}


def clean_line(line: str) -> str:
    line = line.replace("**", "").replace("__", "")
    return _BULLET_RE.sub("", line, count=1).strip()


def prose_lines(text: str) -> list[str]:
    """Return the lines of text with fenced code blocks blanked out."""
    lines = []
    in_fence = False
    for line in text.splitlines():
        if _FENCE_LINE_RE.match(line):
            in_fence = not in_fence
            lines.append("")
            continue
        lines.append("" if in_fence else line)
    return lines


def section_lines(lines: list[str], start: int, heading_only: bool) -> list[str]:
    """Collect the continuation lines that belong to the label on lines[start]."""
    parts: list[str] = []
    for line in lines[start + 1 :]:
        if not line.strip():
            if heading_only and not parts:
                continue
            break
        cleaned = clean_line(line)
        if _SECTION_START_RE.match(cleaned) or line.lstrip().startswith("#"):
            break
        if _BULLET_RE.match(line) and not heading_only:
            break
        parts.append(cleaned)
    return parts


def sentiment_score(text: str) -> int:
    words = [w.lower() for w in _WORD_RE.findall(text)]
    positive = sum(1 for w in words if w in POSITIVE_WORDS)
    negative = sum(1 for w in words if w in NEGATIVE_WORDS)
    if positive > negative:
        return POSITIVE_SCORE
    if negative > positive:
        return NEGATIVE_SCORE
    return NEUTRAL_SCORE


def _join(parts: list[str]) -> str:
    return " ".join(p for p in parts if p).strip()


def _guess(parts: list[str]) -> tuple[int, str]:
    """Weaker guess for a label without a recognised score form."""
    comment_parts = []
    score = None
    for part in parts:
        score_match = _SCORE_LINE_RE.match(part)
        if score_match and score is None:
            score = normalize_score(score_match.group("score"))
            continue
        comment_parts.append(_COMMENT_PREFIX_RE.sub("", part))
    comment = _join(comment_parts)
    if score is None:
        if parse_number(comment) is not None:
            score = normalize_score(comment)
        else:
            score = sentiment_score(comment)
    return score, comment


def _match_label(matcher: _Matcher, lines: list[str], index: int, cleaned: str) -> tuple[int, str] | None:
    for pattern in (matcher.paren, matcher.leading, matcher.trailing):
        match = pattern.match(cleaned)
        if match:
            rest = section_lines(lines, index, heading_only=False)
            comment = _join([match.group("comment").strip(), *rest])
            return normalize_score(match.group("score")), comment

    match = matcher.heading.match(cleaned)
    if match is None:
        return None
    first = match.group("comment").strip()
    parts = section_lines(lines, index, heading_only=not first)
    return _guess([first, *parts] if first else parts)


def _scan(matchers: dict[str, _Matcher], lines: list[str]) -> dict[str, tuple[int, str]]:
    found: dict[str, tuple[int, str]] = {}
    for index, line in enumerate(lines):
        cleaned = clean_line(line)
        if not cleaned:
            continue
        for name, matcher in matchers.items():
            if name in found:
                continue
            scored = _match_label(matcher, lines, index, cleaned)
            if scored is not None:
                found[name] = scored
                break
    return found


def _sentence_around(text: str, start: int, end: int) -> tuple[str, int]:
    """Return the sentence holding text[start:end] and where that sentence stops."""
    left = 0
    for match in _SENTENCE_END_RE.finditer(text, 0, start):
        left = match.end()
    match = _SENTENCE_END_RE.search(text, end)
    right = match.start() if match else len(text)
    return text[left:right].strip(), right


def _mentioned(lines: list[str], names) -> dict[str, tuple[int, str]]:
    """Weak guess for labels mentioned mid-sentence.

    Lines that start a labelled section are skipped. The first number after
    the label in the same sentence is its score, else the sentence sentiment.
    """
    prose = "\n".join(
        "" if _SECTION_START_RE.match(clean_line(line)) else line.replace("**", "").replace("__", "")
        for line in lines
    )
    found: dict[str, tuple[int, str]] = {}
    for name in names:
        match = _MENTION_RES[name].search(prose)
        if match is None:
            continue
        sentence, stop = _sentence_around(prose, match.start(), match.end())
        near = _NEAR_SCORE_RE.search(prose, match.end(), stop)
        score = normalize_score(near.group("score")) if near else sentiment_score(sentence)
        found[name] = score, sentence
    return found


def extract_subcriteria(text: str) -> dict[str, SubcriterionScore]:
    lines = prose_lines(text)
    return {
        name: SubcriterionScore(score=score, comment=comment)
        for name, (score, comment) in _scan(_SUBCRITERION_MATCHERS, lines).items()
    }


def extract_free_text(text: str) -> dict[str, CriterionScore]:
    """Return the criteria that could be read from prose."""
    lines = prose_lines(text)
    found = _scan(_CRITERION_MATCHERS, lines)
    found.update(_mentioned(lines, [name for name in CRITERION_LABELS if name not in found]))
    criteria = {
        name: CriterionScore(score=score, comment=comment)
        for name, (score, comment) in found.items()
    }

    subcriteria = extract_subcriteria(text)
    if subcriteria:
        clean_code = criteria.get(Criterion.CLEAN_CODE.value)
        if clean_code is None:
            mean = sum(s.score for s in subcriteria.values()) / len(subcriteria)
            criteria[Criterion.CLEAN_CODE.value] = CriterionScore(
                score=round_half_up(mean), comment="", subcriteria=subcriteria
            )
        else:
            clean_code.subcriteria.update(subcriteria)
    return criteria


def labelled_overall_comment(text: str) -> str | None:
    """Return the text after a "Comentário Geral:" / "Conclusion:" style label."""
    lines = prose_lines(text)
    for index, line in enumerate(lines):
        cleaned = clean_line(line)
        match = _OVERALL_MATCHER.heading.match(cleaned) if cleaned else None
        if match is None:
            continue
        first = match.group("comment").strip()
        parts = section_lines(lines, index, heading_only=not first)
        comment = _join([first, *parts] if first else parts)
        if comment:
            return comment
    return None
