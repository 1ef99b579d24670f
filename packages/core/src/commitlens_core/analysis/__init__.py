from commitlens_core.analysis.interpreter import ResponseInterpreter, interpret
from commitlens_core.analysis.models import (
    CRITERIA,
    AnalysisResult,
    Criterion,
    CriterionScore,
    RefactoringProposal,
    SubcriterionScore,
)
from commitlens_core.analysis.scores import normalize_score

__all__ = [
    "CRITERIA",
    "AnalysisResult",
    "Criterion",
    "CriterionScore",
    "RefactoringProposal",
    "ResponseInterpreter",
    "SubcriterionScore",
    "interpret",
    "normalize_score",
]
