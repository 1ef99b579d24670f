"""Names the interpreter recognises in model replies.

JSON keys are compared through canonical_key(), which ignores case, accents,
spaces and punctuation: "Código Limpo", "codigo_limpo" and "CodigoLimpo" all
become "codigolimpo". Free-text labels are regular expression fragments
matched case-insensitively.

Portuguese and English spellings are both listed; the prompt asks for one
shape but local models answer in whichever language the code comments use.
"""

from __future__ import annotations

import re
import unicodedata

from commitlens_core.analysis.models import Criterion


def canonical_key(key) -> str:
    text = unicodedata.normalize("NFKD", str(key))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]", "", text.lower())


def _table(entries: dict[str, tuple[str, ...]]) -> dict[str, str]:
    return {canonical_key(synonym): name for name, synonyms in entries.items() for synonym in synonyms}


CRITERION_KEYS = _table(
    {
        Criterion.CLEAN_CODE.value: ("CleanCode", "clean_code", "codigo limpo", "código limpo"),
        Criterion.SOLID.value: ("SOLID", "solid_principles", "principios solid", "princípios SOLID"),
        Criterion.DESIGN_PATTERNS.value: ("DesignPatterns", "design_patterns", "padroes de projeto", "padrões de projeto"),
        Criterion.TESTABILITY.value: ("Testability", "testabilidade", "testes", "tests", "testable"),
        Criterion.SECURITY.value: ("Security", "seguranca", "segurança", "seguridad"),
    }
)

# Clean-code subcriteria, keyed by their English canonical name.
SUBCRITERION_KEYS = _table(
    {
        "variableNaming": ("nomenclaturaVariaveis", "variableNaming", "variable_names", "nomesVariaveis"),
        "methodNaming": ("nomenclaturaMetodos", "methodNaming", "method_names", "functionNaming"),
        "functionSize": ("tamanhoFuncoes", "functionSize", "methodSize", "functionLength"),
        "commentUsage": ("comentarios", "comentários", "commentUsage", "comments"),
        "codeDuplication": ("duplicacaoCodigo", "codeDuplication", "duplication", "duplicacao"),
    }
)

SCORE_KEYS = frozenset(canonical_key(k) for k in ("Nota", "Score", "pontuacao", "rating", "grade", "value"))
COMMENT_KEYS = frozenset(
    canonical_key(k) for k in ("Comentario", "Comment", "observacao", "feedback", "explanation", "explicacao")
)
SUBCRITERIA_CONTAINER_KEYS = frozenset(
    canonical_key(k) for k in ("subcriteria", "subcriterios", "subcritérios", "details", "detalhes")
)
WRAPPER_KEYS = frozenset(
    canonical_key(k)
    for k in ("analiseGeral", "análise geral", "analysis", "analise", "criteria", "criterios", "critérios",
              "scores", "avaliacao", "evaluation", "resultado", "result")
)
OVERALL_COMMENT_KEYS = frozenset(
    canonical_key(k)
    for k in ("comentarioGeral", "comentário geral", "overallComment", "generalComment", "summary", "resumo",
              "conclusao", "conclusão", "conclusion")
)
REFACTORING_KEYS = frozenset(
    canonical_key(k)
    for k in ("propostaRefatoracao", "propostaDeRefatoracao", "refactoringProposal", "sugestaoRefatoracao",
              "refactoringSuggestion", "refactoring", "refatoracao")
)

PROPOSAL_FIELDS = _table(
    {
        "title": ("Titulo", "Title"),
        "description": ("Descricao", "Description"),
        "original_code": ("CodigoOriginal", "OriginalCode", "before"),
        "proposed_code": ("CodigoRefatorado", "CodigoProposto", "ProposedCode", "RefactoredCode", "after"),
        "justification": ("Justificativa", "Justification", "Razao", "Reason", "motivo"),
        "priority": ("Prioridade", "Priority"),
    }
)

# ---------------------------------------------------------------------------
# Free-text labels
# ---------------------------------------------------------------------------

CRITERION_LABELS: dict[str, str] = {
    Criterion.CLEAN_CODE.value: r"clean[\s_-]*code|c[óo]digo\s+limpo",
    Criterion.SOLID.value: r"(?:princ[íi]pios\s+)?solid(?:\s+principles)?",
    Criterion.DESIGN_PATTERNS.value: r"design[\s_-]*patterns?|padr[õo]es\s+de\s+projeto",
    Criterion.TESTABILITY.value: r"testabilidade|testability|testes|tests",
    Criterion.SECURITY.value: r"seguran[çc]a|security|seguridad",
}

SUBCRITERION_LABELS: dict[str, str] = {
    "variableNaming": r"nomenclatura\s+(?:das\s+|de\s+)?vari[áa]veis|variable\s+naming",
    "methodNaming": r"nomenclatura\s+(?:dos\s+|de\s+)?m[ée]todos|method\s+naming",
    "functionSize": r"tamanho\s+(?:das\s+|de\s+)?fun[çc][õo]es|function\s+size",
    "commentUsage": r"(?:uso\s+de\s+)?coment[áa]rios|comment\s+usage",
    "codeDuplication": r"duplica[çc][ãa]o\s+(?:de\s+)?c[óo]digo|code\s+duplication",
}

OVERALL_COMMENT_LABEL = (
    r"coment[áa]rio\s+geral|an[áa]lise\s+geral|conclus[ãa]o|conclusion|overall\s+comment|general\s+comment|summary"
)
OVERALL_SCORE_LABEL = r"nota\s+final|nota\s+geral|final\s+score|overall\s+score"
PROPOSAL_LABEL = (
    r"proposta\s+de\s+refatora[çc][ãa]o|sugest[ãa]o\s+de\s+refatora[çc][ãa]o|refactoring\s+(?:proposal|suggestion)"
)

POSITIVE_WORDS = frozenset(
    {
        "good", "great", "excellent", "adequate", "correct", "well", "positive", "clear", "strong",
        "bom", "boa", "ótimo", "ótima", "excelente", "adequado", "adequada", "correto", "correta", "bem", "positivo",
    }
)
NEGATIVE_WORDS = frozenset(
    {
        "bad", "poor", "inadequate", "problem", "problems", "issue", "issues", "failure", "failures", "error",
        "errors", "weak", "negative", "missing", "problemas", "falhas", "erros",
        "ruim", "inadequado", "inadequada", "problema", "falha", "erro", "mal", "negativo", "pobre", "fraco",
    }
)


def lookup(table: dict[str, str], key) -> str | None:
    return table.get(canonical_key(key))


def find_key(obj: dict, keys: frozenset[str]):
    """Return the value of the first key of obj whose canonical form is in keys."""
    for key, value in obj.items():
        if canonical_key(key) in keys:
            return value
    return None
