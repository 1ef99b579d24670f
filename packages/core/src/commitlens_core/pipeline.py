"""Core commit analysis orchestration.

run_analysis() takes one commit through the whole flow:

    vcs adapter → changed paths → (skip deleted / excluded / binary)
               → parent + current content → compute_diff → render_diff
               → provider.analyze → FileAnalysis
               → CommitSummary (joined after every file has finished)
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import MutableMapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone

from github import GithubException
from rich.console import Console
from rich.table import Table

from commitlens_core.analysis.models import CRITERIA, NEUTRAL_SCORE, AnalysisResult
from commitlens_core.analysis.scores import round_half_up
from commitlens_core.config import load_guidelines
from commitlens_core.diff import compute_diff, diff_stats, render_diff
from commitlens_core.errors import CommitLensError, ProviderError
from commitlens_core.providers.base import BaseProvider
from commitlens_core.utils.code import is_code_file, looks_binary
from commitlens_core.vcs.base import BaseRepository, ChangedPath, ChangeKind, CommitInfo

console = Console()
logger = logging.getLogger(__name__)

PROVIDERS = ("anthropic", "openai", "ollama")


@dataclass
class FileAnalysis:
    path: str
    change_kind: str
    lines_added: int = 0
    lines_removed: int = 0
    result: AnalysisResult | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "change_kind": self.change_kind,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, d: dict) -> FileAnalysis:
        result = d.get("result")
        return cls(
            path=d.get("path", ""),
            change_kind=d.get("change_kind", ChangeKind.MODIFIED.value),
            lines_added=d.get("lines_added", 0),
            lines_removed=d.get("lines_removed", 0),
            result=AnalysisResult.from_dict(result) if result else None,
            error=d.get("error"),
        )


@dataclass
class CommitSummary:
    """Result returned by run_analysis - carries enough data for the CLI to persist history.

    Decoupled from commitlens_store so commitlens_core has no dependency on the store layer.
    The CLI converts each analysed file to an AnalysisRecord before persisting.
    """

    repo: str
    sha: str
    author: str
    email: str
    date: str
    message: str
    model: str
    files: list[FileAnalysis] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    analyzed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def analyzed_files(self) -> list[FileAnalysis]:
        return [f for f in self.files if f.result is not None]

    @property
    def overall_score(self) -> int:
        scores = [f.result.overall_score for f in self.analyzed_files]
        if not scores:
            return NEUTRAL_SCORE
        return round_half_up(sum(scores) / len(scores))

    def to_dict(self) -> dict:
        return {
            "repo": self.repo,
            "sha": self.sha,
            "author": self.author,
            "email": self.email,
            "date": self.date,
            "message": self.message,
            "model": self.model,
            "files": [f.to_dict() for f in self.files],
            "skipped_files": list(self.skipped_files),
            "analyzed_at": self.analyzed_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CommitSummary:
        return cls(
            repo=d.get("repo", ""),
            sha=d.get("sha", ""),
            author=d.get("author", ""),
            email=d.get("email", ""),
            date=d.get("date", ""),
            message=d.get("message", ""),
            model=d.get("model", ""),
            files=[FileAnalysis.from_dict(f) for f in d.get("files", [])],
            skipped_files=list(d.get("skipped_files", [])),
            analyzed_at=d.get("analyzed_at", ""),
        )


def get_provider(config: dict) -> BaseProvider:
    provider = config.get("provider", "anthropic")
    model_name = config.get("model_name")
    sentinel_tokens = config.get("sentinel_tokens")
    if provider == "anthropic":
        from commitlens_core.providers.anthropic import AnthropicProvider

        return AnthropicProvider(config.get("anthropic_api_key"), model_name, sentinel_tokens)
    if provider == "openai":
        from commitlens_core.providers.openai import OpenAIProvider

        return OpenAIProvider(config.get("openai_api_key"), model_name, sentinel_tokens)
    if provider == "ollama":
        from commitlens_core.providers.ollama import DEFAULT_OLLAMA_URL, OllamaProvider

        return OllamaProvider(
            base_url=config.get("ollama_url") or DEFAULT_OLLAMA_URL,
            model_name=model_name,
            timeout=config.get("request_timeout", 120),
            sentinel_tokens=sentinel_tokens,
        )
    raise ProviderError(f"Unknown model provider: {provider!r}. Choose one of: {', '.join(PROVIDERS)}.")


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def _skip_reason(change: ChangedPath, exclude_patterns: list[str]) -> str | None:
    if change.change_kind is ChangeKind.DELETED:
        return "deleted"
    if _is_excluded(change.path, exclude_patterns):
        return "excluded"
    if not is_code_file(change.path):
        return "not code"
    return None


def _count_unified(patch: str) -> tuple[int, int]:
    added = removed = 0
    for line in patch.splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            removed += 1
    return added, removed


def build_diff_text(
    repository: BaseRepository,
    sha: str,
    parent: str | None,
    change: ChangedPath,
    config: dict,
) -> tuple[str, int, int]:
    """Return (diff text for the prompt, lines added, lines removed) for one changed path."""
    if config.get("diff_source") == "git":
        text = repository.get_file_diff(sha, change.path)
        added, removed = _count_unified(text)
    else:
        original = ""
        if parent and change.change_kind is not ChangeKind.ADDED:
            original = repository.get_file_content_at_revision(parent, change.old_path or change.path) or ""
        modified = repository.get_file_content_at_revision(sha, change.path) or ""
        if looks_binary(original) or looks_binary(modified):
            return "", 0, 0
        entries = compute_diff(
            original,
            modified,
            max_chars=config.get("max_chars_per_file", 100000),
            max_lines=config.get("max_lines_per_file", 1000),
        )
        added, removed = diff_stats(entries)
        text = render_diff(entries)

    max_diff_chars = config.get("max_diff_chars", 20000)
    if len(text) > max_diff_chars:
        text = text[:max_diff_chars] + "\n... [diff truncated]"
    return text, added, removed


def analyze_file(
    provider: BaseProvider,
    repository: BaseRepository,
    commit: CommitInfo,
    parent: str | None,
    change: ChangedPath,
    guidelines: str,
    config: dict,
) -> FileAnalysis:
    analysis = FileAnalysis(path=change.path, change_kind=change.change_kind.value)
    try:
        diff_text, analysis.lines_added, analysis.lines_removed = build_diff_text(
            repository, commit.sha, parent, change, config
        )
    except (GithubException, CommitLensError) as e:
        analysis.error = str(e)
        return analysis

    if not diff_text.strip():
        analysis.error = "empty diff"
        return analysis

    analysis.result = provider.analyze(
        file_path=change.path,
        diff_text=diff_text,
        commit_message=commit.message,
        guidelines=guidelines,
    )
    return analysis


def _run_guarded(run, change: ChangedPath) -> FileAnalysis:
    """Run one analysis; an unexpected failure is recorded on the file, not raised."""
    try:
        return run(change)
    except Exception as e:
        logger.warning("Analysis of %s failed: %s", change.path, e)
        return FileAnalysis(path=change.path, change_kind=change.change_kind.value, error=str(e))


def _analyze_parallel(tasks: list[ChangedPath], run, max_workers: int) -> list[FileAnalysis]:
    """Run analyses on a bounded pool; results keep the order of tasks."""
    results: list[FileAnalysis | None] = [None] * len(tasks)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {executor.submit(_run_guarded, run, change): i for i, change in enumerate(tasks)}
        for future in as_completed(future_to_index):
            i = future_to_index[future]
            results[i] = future.result()
            console.print(f"  Analysed: {tasks[i].path}")
    return results  # type: ignore[return-value]


def run_analysis(
    repository: BaseRepository,
    revision: str,
    provider: BaseProvider,
    config: dict,
    cache: MutableMapping[str, dict] | None = None,
) -> CommitSummary:
    """Analyse every changed code file of one commit and return a CommitSummary.

    ``cache`` is any mapping keyed by commit sha (a dict, a shelve, a Redis
    wrapper); a hit returns the stored summary without calling the provider.
    """
    commit = repository.get_commit(revision)
    if cache is not None and commit.sha in cache:
        console.print(f"[dim]Using cached analysis for {commit.sha[:7]}[/dim]")
        return CommitSummary.from_dict(cache[commit.sha])

    parent = repository.get_parent_revision(commit.sha)
    changes = sorted(repository.get_changed_paths(commit.sha), key=lambda c: c.path)
    guidelines = load_guidelines(config)
    exclude_patterns = config.get("exclude", [])

    summary = CommitSummary(
        repo=repository.name,
        sha=commit.sha,
        author=commit.author,
        email=commit.email,
        date=commit.date,
        message=commit.message,
        model=f"{config.get('provider', '')}:{provider.model_name}",
    )

    tasks: list[ChangedPath] = []
    for change in changes:
        reason = _skip_reason(change, exclude_patterns)
        if reason:
            console.print(f"  Skipping ({reason}): {change.path}")
            summary.skipped_files.append(change.path)
        else:
            tasks.append(change)

    def run(change: ChangedPath) -> FileAnalysis:
        return analyze_file(provider, repository, commit, parent, change, guidelines, config)

    console.print(f"\n[bold]Commit {commit.sha[:7]}[/bold] by {commit.author}: {len(tasks)} file(s) to analyse")
    max_workers = max(1, int(config.get("max_workers", 1)))
    if max_workers > 1 and len(tasks) > 1:
        summary.files = _analyze_parallel(tasks, run, min(max_workers, len(tasks)))
    else:
        for i, change in enumerate(tasks, 1):
            console.print(f"[[{i}/{len(tasks)}]] Analysing: {change.path}")
            summary.files.append(_run_guarded(run, change))

    for f in summary.files:
        if f.error:
            console.print(f"  [red]{f.path}: {f.error}[/red]")

    if cache is not None:
        cache[commit.sha] = summary.to_dict()
    return summary


def run_recent(
    repository: BaseRepository,
    provider: BaseProvider,
    config: dict,
    since_hours: int = 24,
    cache: MutableMapping[str, dict] | None = None,
) -> list[CommitSummary]:
    """Analyse every commit made in the last since_hours, oldest first."""
    commits = repository.list_recent_commits(since_hours=since_hours)
    if not commits:
        console.print(f"[yellow]No commits in the last {since_hours} hour(s).[/yellow]")
        return []
    return [run_analysis(repository, c.sha, provider, config, cache) for c in reversed(commits)]


def _score_style(score: int) -> str:
    if score >= 70:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def print_summary(summary: CommitSummary) -> None:
    """Print per-file criterion scores for a commit."""
    if not summary.analyzed_files:
        console.print(f"[yellow]Commit {summary.sha[:7]}: no files analysed.[/yellow]")
        return

    table = Table(title=f"Commit {summary.sha[:7]} - {summary.author}", show_header=True, header_style="bold cyan")
    table.add_column("File", max_width=40)
    for name in CRITERIA:
        table.add_column(name, justify="right")
    table.add_column("Overall", justify="right", style="bold")

    for f in summary.analyzed_files:
        scores = [f.result.criteria[name].score for name in CRITERIA]
        cells = [f"[{_score_style(s)}]{s}[/{_score_style(s)}]" for s in scores]
        table.add_row(f.path, *cells, str(f.result.overall_score))

    console.print(table)
    style = _score_style(summary.overall_score)
    console.print(f"Commit score: [{style}]{summary.overall_score}[/{style}]")

    for f in summary.analyzed_files:
        proposal = f.result.refactoring_proposal
        if proposal:
            console.print(f"\n[bold cyan]{f.path}[/bold cyan]  refactoring (priority {proposal.priority}): {proposal.title}")
            if proposal.description:
                console.print(f"  {proposal.description}")
