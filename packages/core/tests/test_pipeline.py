"""Tests for commit analysis orchestration."""

import json

import pytest
from github import GithubException

from commitlens_core.errors import ProviderError
from commitlens_core.pipeline import (
    CommitSummary,
    FileAnalysis,
    _is_excluded,
    _skip_reason,
    analyze_file,
    build_diff_text,
    get_provider,
    print_summary,
    run_analysis,
    run_recent,
)
from commitlens_core.providers.base import BaseProvider
from commitlens_core.providers.ollama import OllamaProvider
from commitlens_core.vcs.base import BaseRepository, ChangedPath, ChangeKind, CommitInfo

REPLY = json.dumps(
    {
        "CleanCode": {"score": 8, "comment": "clear"},
        "SOLID": {"score": 6, "comment": "ok"},
        "overallComment": "Fine.",
    }
)


def _commit(sha, message="Refactor parser", date="2024-05-01T10:00:00+00:00"):
    return CommitInfo(sha=sha, author="Dana", email="dana@example.com", date=date, message=message)


class FakeRepository(BaseRepository):
    """In-memory history: contents keyed by (revision, path)."""

    name = "acme/app"

    def __init__(self, commits=None, parents=None, changes=None, contents=None, patches=None):
        self.commits = commits or {}
        self.parents = parents or {}
        self.changes = changes or {}
        self.contents = contents or {}
        self.patches = patches or {}

    def get_commit(self, revision):
        return self.commits[revision]

    def get_parent_revision(self, revision):
        return self.parents.get(revision)

    def get_changed_paths(self, revision):
        return list(self.changes.get(revision, []))

    def get_file_content_at_revision(self, revision, path):
        content = self.contents.get((revision, path))
        if isinstance(content, Exception):
            raise content
        return content

    def get_file_diff(self, revision, path):
        return self.patches.get((revision, path), "")

    def list_recent_commits(self, since_hours=24):
        return [self.commits[sha] for sha in sorted(self.commits, reverse=True)]


class StubProvider(BaseProvider):
    MODEL = "stub-model"

    def __init__(self, reply=REPLY):
        super().__init__()
        self.reply = reply
        self.prompts = []

    def _call_api(self, system_prompt, user_prompt, model):
        self.prompts.append(user_prompt)
        return self.reply


CONFIG = {"provider": "stub", "guidelines": None, "exclude": [], "max_workers": 1}


@pytest.fixture
def repository():
    return FakeRepository(
        commits={"c1": _commit("c1")},
        parents={"c1": "c0"},
        changes={
            "c1": [
                ChangedPath("src/b.py", ChangeKind.MODIFIED),
                ChangedPath("src/a.py", ChangeKind.ADDED),
                ChangedPath("docs/logo.png", ChangeKind.ADDED),
                ChangedPath("src/old.py", ChangeKind.DELETED),
            ]
        },
        contents={
            ("c0", "src/b.py"): "x = 1\ny = 2\n",
            ("c1", "src/b.py"): "x = 1\ny = 3\n",
            ("c1", "src/a.py"): "def a():\n    return 1\n",
        },
    )


class TestIsExcluded:
    def test_directory_prefix(self):
        assert _is_excluded("migrations/0001_initial.py", ["migrations/"]) is True

    def test_nested_directory(self):
        assert _is_excluded("app/migrations/0001_initial.py", ["migrations"]) is True

    def test_basename_glob(self):
        assert _is_excluded("static/js/app.min.js", ["*.min.js"]) is True

    def test_full_path_glob(self):
        assert _is_excluded("src/generated/models.py", ["src/generated/*.py"]) is True

    def test_no_match(self):
        assert _is_excluded("src/app.py", ["migrations/", "*.min.js"]) is False


class TestSkipReason:
    def test_deleted(self):
        assert _skip_reason(ChangedPath("a.py", ChangeKind.DELETED), []) == "deleted"

    def test_excluded(self):
        assert _skip_reason(ChangedPath("vendor/lib.py", ChangeKind.MODIFIED), ["vendor/"]) == "excluded"

    def test_not_code(self):
        assert _skip_reason(ChangedPath("logo.png", ChangeKind.ADDED), []) == "not code"

    def test_analysed(self):
        assert _skip_reason(ChangedPath("a.py", ChangeKind.RENAMED, old_path="b.py"), []) is None


class TestBuildDiffText:
    def test_modified_file(self, repository):
        text, added, removed = build_diff_text(
            repository, "c1", "c0", ChangedPath("src/b.py", ChangeKind.MODIFIED), CONFIG
        )
        assert text == "  x = 1\n- y = 2\n+ y = 3"
        assert (added, removed) == (1, 1)

    def test_added_file_ignores_parent(self, repository):
        repository.contents[("c0", "src/a.py")] = "stale"
        text, added, removed = build_diff_text(repository, "c1", "c0", ChangedPath("src/a.py", ChangeKind.ADDED), CONFIG)
        assert text == "+ def a():\n+     return 1"
        assert (added, removed) == (2, 0)

    def test_renamed_file_reads_old_path_from_parent(self, repository):
        repository.contents[("c0", "src/old_name.py")] = "x = 1\n"
        repository.contents[("c1", "src/new_name.py")] = "x = 1\n"
        change = ChangedPath("src/new_name.py", ChangeKind.RENAMED, old_path="src/old_name.py")
        text, added, removed = build_diff_text(repository, "c1", "c0", change, CONFIG)
        assert text == "  x = 1"
        assert (added, removed) == (0, 0)

    def test_root_commit_has_empty_original(self, repository):
        _, added, removed = build_diff_text(repository, "c1", None, ChangedPath("src/b.py", ChangeKind.MODIFIED), CONFIG)
        assert (added, removed) == (2, 0)

    def test_binary_content_gives_empty_text(self, repository):
        repository.contents[("c1", "src/a.py")] = "\x00\x01"
        assert build_diff_text(repository, "c1", "c0", ChangedPath("src/a.py", ChangeKind.ADDED), CONFIG) == ("", 0, 0)

    def test_git_diff_source(self, repository):
        repository.patches[("c1", "src/b.py")] = "--- a/src/b.py\n+++ b/src/b.py\n@@ -1 +1,2 @@\n-y = 2\n+y = 3\n+z = 4\n"
        config = {**CONFIG, "diff_source": "git"}
        text, added, removed = build_diff_text(repository, "c1", "c0", ChangedPath("src/b.py", ChangeKind.MODIFIED), config)
        assert text.startswith("--- a/src/b.py")
        assert (added, removed) == (2, 1)

    def test_long_diff_truncated(self, repository):
        config = {**CONFIG, "max_diff_chars": 5}
        text, _, _ = build_diff_text(repository, "c1", "c0", ChangedPath("src/b.py", ChangeKind.MODIFIED), config)
        assert text == "  x =\n... [diff truncated]"


class TestAnalyzeFile:
    def test_result_attached(self, repository):
        provider = StubProvider()
        analysis = analyze_file(
            provider, repository, _commit("c1"), "c0", ChangedPath("src/b.py", ChangeKind.MODIFIED), "rubric", CONFIG
        )
        assert analysis.error is None
        assert analysis.result.overall_score == 70
        assert (analysis.lines_added, analysis.lines_removed) == (1, 1)
        assert "Refactor parser" in provider.prompts[0]
        assert "+ y = 3" in provider.prompts[0]

    def test_empty_diff_recorded_as_error(self, repository):
        repository.contents[("c1", "src/a.py")] = "\x00"
        provider = StubProvider()
        analysis = analyze_file(
            provider, repository, _commit("c1"), "c0", ChangedPath("src/a.py", ChangeKind.ADDED), "", CONFIG
        )
        assert analysis.error == "empty diff"
        assert analysis.result is None
        assert provider.prompts == []

    def test_github_error_recorded(self, repository):
        repository.contents[("c1", "src/a.py")] = GithubException(500, {"message": "server error"}, None)
        analysis = analyze_file(
            StubProvider(), repository, _commit("c1"), "c0", ChangedPath("src/a.py", ChangeKind.ADDED), "", CONFIG
        )
        assert analysis.result is None
        assert analysis.error


class TestRunAnalysis:
    def test_summary(self, repository):
        summary = run_analysis(repository, "c1", StubProvider(), CONFIG)
        assert summary.repo == "acme/app"
        assert summary.sha == "c1"
        assert summary.author == "Dana"
        assert summary.model == "stub:stub-model"
        assert [f.path for f in summary.files] == ["src/a.py", "src/b.py"]
        assert summary.skipped_files == ["docs/logo.png", "src/old.py"]
        assert summary.overall_score == 70

    def test_excluded_paths_skipped(self, repository):
        config = {**CONFIG, "exclude": ["src/a.py"]}
        summary = run_analysis(repository, "c1", StubProvider(), config)
        assert [f.path for f in summary.files] == ["src/b.py"]
        assert "src/a.py" in summary.skipped_files

    def test_cache_miss_then_hit(self, repository):
        cache = {}
        provider = StubProvider()
        first = run_analysis(repository, "c1", provider, CONFIG, cache=cache)
        calls = len(provider.prompts)

        second = run_analysis(repository, "c1", provider, CONFIG, cache=cache)
        assert "c1" in cache
        assert len(provider.prompts) == calls
        assert second == first

    def test_parallel_keeps_path_order(self, repository):
        repository.changes["c1"].append(ChangedPath("src/c.py", ChangeKind.ADDED))
        repository.contents[("c1", "src/c.py")] = "c = 3\n"
        config = {**CONFIG, "max_workers": 4}
        summary = run_analysis(repository, "c1", StubProvider(), config)
        assert [f.path for f in summary.files] == ["src/a.py", "src/b.py", "src/c.py"]
        assert all(f.result is not None for f in summary.files)

    def test_parallel_failure_captured_per_file(self, repository):
        repository.contents[("c1", "src/a.py")] = RuntimeError("disk gone")
        config = {**CONFIG, "max_workers": 2}
        summary = run_analysis(repository, "c1", StubProvider(), config)
        by_path = {f.path: f for f in summary.files}
        assert by_path["src/a.py"].error == "disk gone"
        assert by_path["src/b.py"].result is not None
        assert summary.analyzed_files == [by_path["src/b.py"]]

    def test_sequential_failure_captured_per_file(self, repository):
        repository.contents[("c1", "src/a.py")] = RuntimeError("disk gone")
        summary = run_analysis(repository, "c1", StubProvider(), CONFIG)
        by_path = {f.path: f for f in summary.files}
        assert [f.path for f in summary.files] == ["src/a.py", "src/b.py"]
        assert by_path["src/a.py"].error == "disk gone"
        assert by_path["src/a.py"].change_kind == "added"
        assert by_path["src/b.py"].result is not None


class TestRunRecent:
    def test_oldest_commit_first(self, repository):
        repository.commits["c2"] = _commit("c2", date="2024-05-02T10:00:00+00:00")
        repository.parents["c2"] = "c1"
        summaries = run_recent(repository, StubProvider(), CONFIG)
        assert [s.sha for s in summaries] == ["c1", "c2"]
        assert summaries[1].files == []

    def test_no_commits(self):
        assert run_recent(FakeRepository(), StubProvider(), CONFIG) == []


class TestGetProvider:
    def test_unknown_provider(self):
        with pytest.raises(ProviderError):
            get_provider({"provider": "mystery"})

    def test_ollama(self):
        provider = get_provider({"provider": "ollama", "ollama_url": "http://gpu:11434", "model_name": "qwen"})
        assert isinstance(provider, OllamaProvider)
        assert provider.base_url == "http://gpu:11434"
        assert provider.model_name == "qwen"

    def test_openai_uses_key_from_config(self, mocker):
        client_cls = mocker.patch("commitlens_core.providers.openai._OpenAI")
        get_provider({"provider": "openai", "openai_api_key": "oai-key"})
        client_cls.assert_called_once_with(api_key="oai-key")


class TestCommitSummary:
    def _summary(self, scores):
        files = []
        for i, score in enumerate(scores):
            f = FileAnalysis(path=f"f{i}.py", change_kind="modified")
            if score is not None:
                f.result = StubProvider(json.dumps({"SOLID": score})).analyze(f.path, "+x")
            else:
                f.error = "empty diff"
            files.append(f)
        return CommitSummary("r", "abc1234", "Dana", "d@x", "2024-05-01", "msg", "m", files=files)

    def test_overall_score_is_mean_of_analysed_files(self):
        assert self._summary([8, 5, None]).overall_score == 65

    def test_no_analysed_files_is_neutral(self):
        assert self._summary([None]).overall_score == 50

    def test_round_trip(self):
        summary = self._summary([7, None])
        summary.skipped_files = ["logo.png"]
        assert CommitSummary.from_dict(json.loads(json.dumps(summary.to_dict()))) == summary


class TestPrintSummary:
    def test_nothing_analysed(self, mocker):
        console = mocker.patch("commitlens_core.pipeline.console")
        print_summary(CommitSummary("r", "abc1234", "Dana", "", "", "", "m"))
        assert "no files analysed" in console.print.call_args.args[0]

    def test_table_and_commit_score(self, mocker):
        console = mocker.patch("commitlens_core.pipeline.console")
        summary = TestCommitSummary()._summary([8])
        print_summary(summary)
        printed = [c.args[0] for c in console.print.call_args_list]
        assert any("Commit score" in str(p) and "80" in str(p) for p in printed)
