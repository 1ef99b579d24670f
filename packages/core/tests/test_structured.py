"""Tests for JSON extraction and schema reconciliation."""

import json

from commitlens_core.analysis.structured import (
    criteria_container,
    extract_json_object,
    find_json_candidates,
    is_legacy_shape,
    overall_comment,
    reconcile,
)
from commitlens_core.analysis.vocabulary import canonical_key


class TestCanonicalKey:
    def test_accents_case_and_punctuation_ignored(self):
        assert canonical_key("Código Limpo") == canonical_key("codigo_limpo") == "codigolimpo"

    def test_cedilla(self):
        assert canonical_key("Segurança") == "seguranca"


class TestFindCandidates:
    def test_fenced_block_first(self):
        text = 'Intro {"ignored": 1}\n```json\n{"SOLID": 7}\n```'
        assert find_json_candidates(text)[0] == '{"SOLID": 7}'

    def test_bare_object_with_braces_in_strings(self):
        text = 'Result: {"comment": "use {} here", "score": 8} done'
        assert find_json_candidates(text) == ['{"comment": "use {} here", "score": 8}']

    def test_unclosed_object_runs_to_end(self):
        assert find_json_candidates('text {"a": {"b": 1') == ['{"a": {"b": 1']

    def test_no_braces(self):
        assert find_json_candidates("no json here") == []


class TestExtractJsonObject:
    def test_plain_json(self):
        assert extract_json_object('{"SOLID": {"score": 7}}') == {"SOLID": {"score": 7}}

    def test_repaired_json(self):
        obj = extract_json_object("```\n{Security: {nota: 9, comentario: 'ok'},}\n```")
        assert obj == {"Security": {"nota": 9, "comentario": "ok"}}

    def test_prefers_object_with_known_keys(self):
        text = 'Example: {"foo": 1}\nAnswer: {"CleanCode": {"nota": 8}}'
        assert extract_json_object(text) == {"CleanCode": {"nota": 8}}

    def test_first_parsable_object_when_none_known(self):
        assert extract_json_object('{"foo": 1} {"bar": 2}') == {"foo": 1}

    def test_object_inside_fenced_array(self):
        assert extract_json_object('```json\n[{"SOLID": 6}]\n```') == {"SOLID": 6}

    def test_nothing_parsable(self):
        assert extract_json_object("{{{ not json") is None
        assert extract_json_object("plain prose") is None


class TestCurrentShape:
    def test_wrapper_with_portuguese_keys(self):
        obj = {"analiseGeral": {"CleanCode": {"nota": 8, "comentario": "ok"}}}
        criteria = reconcile(obj)
        assert list(criteria) == ["CleanCode"]
        assert criteria["CleanCode"].score == 80
        assert criteria["CleanCode"].comment == "ok"

    def test_synonyms_normalised(self):
        obj = {"segurança": {"score": 9}, "Testabilidade": {"nota": 6}, "padrões de projeto": {"nota": 7}}
        criteria = reconcile(obj)
        assert criteria["Security"].score == 90
        assert criteria["Testability"].score == 60
        assert criteria["DesignPatterns"].score == 70

    def test_bare_number_and_scored_string(self):
        criteria = reconcile({"SOLID": 7, "Security": "8/10 - validates input"})
        assert criteria["SOLID"].score == 70
        assert criteria["Security"].score == 80
        assert criteria["Security"].comment == "validates input"

    def test_percentage_in_comment_not_read_as_score(self):
        criteria = reconcile({"SOLID": "6 - 50% of classes have one responsibility"})
        assert criteria["SOLID"].score == 60

    def test_criterion_without_score_not_derived(self):
        criteria = reconcile({"SOLID": {"comment": "looks fine"}, "CleanCode": {"score": 80}})
        assert "SOLID" not in criteria
        assert criteria["CleanCode"].score == 80

    def test_nested_subcriteria(self):
        obj = {
            "CleanCode": {
                "nota": 7,
                "subcriterios": {"nomenclaturaVariaveis": {"nota": 9}, "outro": {"nota": 4}},
            }
        }
        subs = reconcile(obj)["CleanCode"].subcriteria
        assert subs["nomenclaturaVariaveis"].score == 90
        assert subs["outro"].score == 40

    def test_score_synthesised_from_subcriteria_when_missing(self):
        obj = {
            "CleanCode": {
                "comment": "mixed",
                "subcriteria": {"variableNaming": {"score": 8}, "functionSize": {"score": 5}},
            },
            "SOLID": {"score": 7},
        }
        criteria = reconcile(obj)
        assert criteria["CleanCode"].score == 65
        assert criteria["CleanCode"].comment == "mixed"
        assert set(criteria["CleanCode"].subcriteria) == {"variableNaming", "functionSize"}
        assert criteria["SOLID"].score == 70

    def test_criteria_list_under_wrapper(self):
        obj = {"criteria": [{"name": "SOLID", "score": 6}, {"name": "Security", "score": 9}]}
        criteria = reconcile(obj)
        assert criteria["SOLID"].score == 60
        assert criteria["Security"].score == 90

    def test_unknown_keys_ignored(self):
        assert reconcile({"foo": {"score": 8}}) == {}


class TestLegacyShape:
    LEGACY = {
        "nomenclaturaVariaveis": {"nota": 7, "comentario": "bom"},
        "tamanhoFuncoes": {"nota": 5, "comentario": "longo"},
    }

    def test_detected(self):
        assert is_legacy_shape(self.LEGACY) is True
        assert is_legacy_shape({"CleanCode": {}, "tamanhoFuncoes": {}}) is False

    def test_synthesises_clean_code(self):
        criteria = reconcile(self.LEGACY)
        assert list(criteria) == ["CleanCode"]
        clean_code = criteria["CleanCode"]
        assert clean_code.score == 60
        assert clean_code.subcriteria["nomenclaturaVariaveis"].score == 70
        assert clean_code.subcriteria["tamanhoFuncoes"].score == 50
        assert clean_code.subcriteria["tamanhoFuncoes"].comment == "longo"

    def test_rounded_mean_half_up(self):
        criteria = reconcile({"variableNaming": 7, "functionSize": 8})
        assert criteria["CleanCode"].score == 75

    def test_legacy_inside_wrapper(self):
        obj = {"analise": {"duplicacaoCodigo": {"nota": 4}}, "comentarioGeral": "needs work"}
        clean_code = reconcile(obj)["CleanCode"]
        assert clean_code.score == 40
        assert clean_code.comment == "needs work"


class TestOverallComment:
    def test_root_key(self):
        assert overall_comment({"comentarioGeral": " Solid change. "}) == "Solid change."

    def test_inside_wrapper(self):
        obj = {"analysis": {"SOLID": 7, "summary": "Fine overall"}}
        assert criteria_container(obj) == obj["analysis"]
        assert overall_comment(obj) == "Fine overall"

    def test_missing(self):
        assert overall_comment(json.loads('{"SOLID": 7}')) is None
