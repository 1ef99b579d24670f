"""Analysis history data models.

Decoupled from commitlens_core so the store layer can be used independently
and commitlens_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CriterionRecord:
    """One criterion score of a persisted file analysis."""

    name: str
    score: int
    comment: str = ""
    subcriteria: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"name": self.name, "score": self.score, "comment": self.comment, "subcriteria": dict(self.subcriteria)}

    @classmethod
    def from_dict(cls, d: dict) -> CriterionRecord:
        return cls(
            name=d.get("name", ""),
            score=d.get("score", 0),
            comment=d.get("comment", ""),
            subcriteria=dict(d.get("subcriteria") or {}),
        )


@dataclass
class RefactoringRecord:
    title: str
    description: str = ""
    original_code: str | None = None
    proposed_code: str | None = None
    justification: str | None = None
    priority: int = 3

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
    def from_dict(cls, d: dict) -> RefactoringRecord:
        return cls(
            title=d.get("title", ""),
            description=d.get("description", ""),
            original_code=d.get("original_code"),
            proposed_code=d.get("proposed_code"),
            justification=d.get("justification"),
            priority=d.get("priority", 3),
        )


@dataclass
class AnalysisRecord:
    """One analysed file of one commit, persisted to the store.

    Created by the CLI layer after run_analysis() returns a CommitSummary.
    The CLI maps each analysed file of the summary to one AnalysisRecord
    before calling store.save().
    """

    repo: str
    commit_sha: str
    file_path: str
    author: str
    committed_at: str  # ISO-8601
    analyzed_at: str  # ISO-8601 UTC timestamp
    model: str
    overall_score: int
    overall_comment: str = ""
    change_kind: str = "modified"
    lines_added: int = 0
    lines_removed: int = 0
    criteria: list[CriterionRecord] = field(default_factory=list)
    refactoring: RefactoringRecord | None = None
    id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "repo": self.repo,
            "commit_sha": self.commit_sha,
            "file_path": self.file_path,
            "author": self.author,
            "committed_at": self.committed_at,
            "analyzed_at": self.analyzed_at,
            "model": self.model,
            "overall_score": self.overall_score,
            "overall_comment": self.overall_comment,
            "change_kind": self.change_kind,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "criteria": [c.to_dict() for c in self.criteria],
            "refactoring": self.refactoring.to_dict() if self.refactoring else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> AnalysisRecord:
        refactoring = d.get("refactoring")
        return cls(
            id=d.get("id"),
            repo=d.get("repo", ""),
            commit_sha=d.get("commit_sha", ""),
            file_path=d.get("file_path", ""),
            author=d.get("author", ""),
            committed_at=d.get("committed_at", ""),
            analyzed_at=d.get("analyzed_at", ""),
            model=d.get("model", ""),
            overall_score=d.get("overall_score", 0),
            overall_comment=d.get("overall_comment", ""),
            change_kind=d.get("change_kind", "modified"),
            lines_added=d.get("lines_added", 0),
            lines_removed=d.get("lines_removed", 0),
            criteria=[CriterionRecord.from_dict(c) for c in d.get("criteria", [])],
            refactoring=RefactoringRecord.from_dict(refactoring) if refactoring else None,
        )

    def score_of(self, criterion: str) -> int | None:
        for c in self.criteria:
            if c.name == criterion:
                return c.score
        return None
