"""Typed result of interpreting a model reply.

Every AnalysisResult handed out by the interpreter carries exactly the five
criteria in Criterion. Criteria the reply did not cover hold a neutral
placeholder rather than being left out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Criterion(str, Enum):
    CLEAN_CODE = "CleanCode"
    SOLID = "SOLID"
    DESIGN_PATTERNS = "DesignPatterns"
    TESTABILITY = "Testability"
    SECURITY = "Security"


CRITERIA: tuple[str, ...] = tuple(c.value for c in Criterion)

NEUTRAL_SCORE = 50
PLACEHOLDER_COMMENT = "insufficient information"
FALLBACK_COMMENT = "No valid analysis could be extracted from the response."

DEFAULT_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 5


@dataclass
class SubcriterionScore:
    score: int
    comment: str = ""

    def to_dict(self) -> dict:
        return {"score": self.score, "comment": self.comment}

    @classmethod
    def from_dict(cls, d: dict) -> SubcriterionScore:
        return cls(score=int(d.get("score", 0)), comment=d.get("comment", ""))


@dataclass
class CriterionScore:
    score: int
    comment: str = ""
    subcriteria: dict[str, SubcriterionScore] = field(default_factory=dict)

    @classmethod
    def placeholder(cls) -> CriterionScore:
        return cls(score=NEUTRAL_SCORE, comment=PLACEHOLDER_COMMENT)

    def to_dict(self) -> dict:
        d: dict = {"score": self.score, "comment": self.comment}
        if self.subcriteria:
            d["subcriteria"] = {name: sub.to_dict() for name, sub in self.subcriteria.items()}
        return d

    @classmethod
    def from_dict(cls, d: dict) -> CriterionScore:
        return cls(
            score=int(d.get("score", NEUTRAL_SCORE)),
            comment=d.get("comment", ""),
            subcriteria={name: SubcriterionScore.from_dict(s) for name, s in (d.get("subcriteria") or {}).items()},
        )


@dataclass
class RefactoringProposal:
    title: str
    description: str
    original_code: str | None = None
    proposed_code: str | None = None
    justification: str | None = None
    priority: int = DEFAULT_PRIORITY

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "original_code": self.original_code,
            "proposed_code": self.proposed_code,
            "justification": self.justification,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, d: dict) -> RefactoringProposal:
        return cls(
            title=d.get("title", ""),
            description=d.get("description", ""),
            original_code=d.get("original_code"),
            proposed_code=d.get("proposed_code"),
            justification=d.get("justification"),
            priority=int(d.get("priority", DEFAULT_PRIORITY)),
        )


@dataclass
class AnalysisResult:
    criteria: dict[str, CriterionScore]
    overall_score: int
    overall_comment: str = ""
    refactoring_proposal: RefactoringProposal | None = None

    def to_dict(self) -> dict:
        return {
            "criteria": {name: c.to_dict() for name, c in self.criteria.items()},
            "overall_score": self.overall_score,
            "overall_comment": self.overall_comment,
            "refactoring_proposal": self.refactoring_proposal.to_dict() if self.refactoring_proposal else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> AnalysisResult:
        proposal = d.get("refactoring_proposal")
        return cls(
            criteria={name: CriterionScore.from_dict(c) for name, c in (d.get("criteria") or {}).items()},
            overall_score=int(d.get("overall_score", NEUTRAL_SCORE)),
            overall_comment=d.get("overall_comment", ""),
            refactoring_proposal=RefactoringProposal.from_dict(proposal) if proposal else None,
        )


def complete_criteria(found: dict[str, CriterionScore]) -> dict[str, CriterionScore]:
    """Return a mapping holding every criterion, in canonical order."""
    return {name: found.get(name) or CriterionScore.placeholder() for name in CRITERIA}


def fallback_result(refactoring_proposal: RefactoringProposal | None = None) -> AnalysisResult:
    """The result used when nothing could be read from a reply."""
    return AnalysisResult(
        criteria=complete_criteria({}),
        overall_score=NEUTRAL_SCORE,
        overall_comment=FALLBACK_COMMENT,
        refactoring_proposal=refactoring_proposal,
    )
