"""Tests for refactoring proposal extraction."""

import pytest

from commitlens_core.analysis.refactoring import (
    DEFAULT_TITLE,
    clamp_priority,
    proposal_from_json,
    proposal_from_text,
)

PROSE_PROPOSAL = """\
Proposta de Refatoração: Extrair validação
Descrição: mover a validação para uma função própria
Código Original:
```python
if x: pass
```
Código Refatorado:
```python
validate(x)
```
Justificativa: reduz duplicação
Prioridade: 7
"""


class TestClampPriority:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, 3), ("alta", 3), (0, 1), (-2, 1), (2, 2), (4.6, 5), (9, 5), ("Prioridade 4", 4), (True, 3),
            (10**400, 5), (float("nan"), 3),
        ],
    )
    def test_clamped_to_range(self, raw, expected):
        assert clamp_priority(raw) == expected


class TestProposalFromJson:
    def test_portuguese_fields(self):
        obj = {
            "propostaRefatoracao": {
                "titulo": "Extract method",
                "descricao": "Split the loop body",
                "codigoOriginal": "for x in xs: ...",
                "codigoRefatorado": "for x in xs: handle(x)",
                "justificativa": "Shorter functions",
                "prioridade": 8,
            }
        }
        proposal = proposal_from_json(obj)
        assert proposal.title == "Extract method"
        assert proposal.description == "Split the loop body"
        assert proposal.original_code == "for x in xs: ..."
        assert proposal.proposed_code == "for x in xs: handle(x)"
        assert proposal.justification == "Shorter functions"
        assert proposal.priority == 5

    def test_inside_criteria_wrapper(self):
        obj = {"analysis": {"SOLID": 7, "refactoring": {"title": "Inject clock", "priority": "2"}}}
        proposal = proposal_from_json(obj)
        assert proposal.title == "Inject clock"
        assert proposal.priority == 2

    def test_string_value_becomes_description(self):
        proposal = proposal_from_json({"refactoringSuggestion": "Rename the helper"})
        assert proposal.title == DEFAULT_TITLE
        assert proposal.description == "Rename the helper"
        assert proposal.priority == 3

    def test_empty_proposal_is_none(self):
        assert proposal_from_json({"refactoring": {"priority": 2}}) is None
        assert proposal_from_json({"refactoring": ""}) is None

    def test_absent(self):
        assert proposal_from_json({"SOLID": 7}) is None


class TestProposalFromText:
    def test_labelled_fields(self):
        proposal = proposal_from_text(PROSE_PROPOSAL)
        assert proposal.title == "Extrair validação"
        assert proposal.description == "mover a validação para uma função própria"
        assert proposal.original_code == "if x: pass"
        assert proposal.proposed_code == "validate(x)"
        assert proposal.justification == "reduz duplicação"
        assert proposal.priority == 5

    def test_heading_body_used_as_description(self):
        text = "## Refactoring proposal\nMove parsing into its own class.\nPriority: 2\n"
        proposal = proposal_from_text(text)
        assert proposal.title == DEFAULT_TITLE
        assert proposal.description == "Move parsing into its own class."
        assert proposal.priority == 2

    def test_code_labels_alone_are_enough(self):
        text = "Original code:\n```\na = 1\n```\nRefactored code:\n```\nA = 1\n```\n"
        proposal = proposal_from_text(text)
        assert proposal.original_code == "a = 1"
        assert proposal.proposed_code == "A = 1"

    def test_no_signal(self):
        assert proposal_from_text("SOLID: 7/10 - fine") is None
