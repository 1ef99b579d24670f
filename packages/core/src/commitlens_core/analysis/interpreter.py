"""Turn a raw model reply into an AnalysisResult.

The interpreter walks a fixed chain of tiers and keeps whatever each one
manages to read:

    cleanup → structured extraction (JSON, repaired if needed)
            → schema reconciliation (current or legacy shape)
            → free-text fallback (only when no criterion was derived)
            → aggregation (overall score and comment)
            → refactoring proposal (JSON or prose, independent of the above)

Each tier is guarded on its own: a failure is logged and treated as "this
tier found nothing", so interpret() never raises and always returns a result
holding all five criteria.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from commitlens_core.analysis.freetext import extract_free_text, labelled_overall_comment
from commitlens_core.analysis.models import (
    NEUTRAL_SCORE,
    AnalysisResult,
    CriterionScore,
    RefactoringProposal,
    complete_criteria,
    fallback_result,
)
from commitlens_core.analysis.refactoring import proposal_from_json, proposal_from_text
from commitlens_core.analysis.repair import DEFAULT_SENTINEL_TOKENS, apply_rules, cleanup_rules, default_rules
from commitlens_core.analysis.scores import round_half_up
from commitlens_core.analysis.structured import extract_json_object, overall_comment, reconcile

logger = logging.getLogger(__name__)

MIN_PARAGRAPH_CHARS = 20
MAX_PARAGRAPH_CHARS = 500

_FENCED_BLOCK_RE = re.compile(r"```.*?(?:```|$)", re.DOTALL)


class ResponseInterpreter:
    """Interprets model replies. Instances hold only immutable rule tuples and are thread-safe."""

    def __init__(self, sentinel_tokens: Sequence[str] | None = None):
        tokens = tuple(sentinel_tokens) if sentinel_tokens is not None else DEFAULT_SENTINEL_TOKENS
        self._cleanup = cleanup_rules(tokens)
        self._repair = default_rules(tokens)

    def interpret(self, raw_response: str) -> AnalysisResult:
        raw = raw_response if isinstance(raw_response, str) else ""
        text = self._run("cleanup", raw, lambda: apply_rules(raw, self._cleanup))
        if text is None:
            text = raw

        obj = self._run("structured extraction", text, lambda: extract_json_object(text, self._repair))

        criteria: dict[str, CriterionScore] = {}
        if obj is not None:
            criteria = self._run("schema reconciliation", text, lambda: reconcile(obj)) or {}
        if not criteria:
            criteria = self._run("free-text fallback", text, lambda: extract_free_text(text)) or {}

        proposal = self._proposal(obj, text)

        if not criteria:
            logger.info("No criteria could be read from the reply (%d chars); using fallback result", len(raw))
            return fallback_result(proposal)

        comment = self._run("overall comment", text, lambda: self._overall_comment(obj, text)) or ""
        return AnalysisResult(
            criteria=complete_criteria(criteria),
            overall_score=overall_score(criteria),
            overall_comment=comment,
            refactoring_proposal=proposal,
        )

    # ------------------------------------------------------------------ #
    # Tiers                                                                #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _run(tier: str, text: str, fn):
        try:
            return fn()
        except Exception as e:
            logger.warning("Interpretation tier '%s' failed on %d chars: %s", tier, len(text), e)
            return None

    def _proposal(self, obj: dict | None, text: str) -> RefactoringProposal | None:
        proposal = None
        if obj is not None:
            proposal = self._run("refactoring proposal (json)", text, lambda: proposal_from_json(obj))
        if proposal is None:
            proposal = self._run("refactoring proposal (text)", text, lambda: proposal_from_text(text))
        return proposal

    @staticmethod
    def _overall_comment(obj: dict | None, text: str) -> str:
        if obj is not None:
            explicit = overall_comment(obj)
            if explicit:
                return explicit
        return labelled_overall_comment(text) or first_paragraph(text)


def overall_score(criteria: dict[str, CriterionScore]) -> int:
    """Rounded mean of the criteria actually read from the reply; 50 when there are none."""
    if not criteria:
        return NEUTRAL_SCORE
    return round_half_up(sum(c.score for c in criteria.values()) / len(criteria))


def first_paragraph(text: str) -> str:
    """Return the first prose paragraph of a sensible size, skipping code and JSON."""
    prose = _FENCED_BLOCK_RE.sub("\n\n", text)
    for block in re.split(r"\n\s*\n", prose):
        paragraph = " ".join(line.strip() for line in block.strip().splitlines())
        if len(paragraph) < MIN_PARAGRAPH_CHARS or paragraph[0] in "{[":
            continue
        if len(paragraph) > MAX_PARAGRAPH_CHARS:
            return paragraph[:MAX_PARAGRAPH_CHARS].rstrip() + "..."
        return paragraph
    return ""


_default = ResponseInterpreter()


def interpret(raw_response: str) -> AnalysisResult:
    """Interpret a reply with the default sentinel token list."""
    return _default.interpret(raw_response)
