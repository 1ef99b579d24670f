"""analyze command - score the changed files of one or more commits."""

from __future__ import annotations

import os

import click
from rich.console import Console

from commitlens_core.pipeline import PROVIDERS, CommitSummary, get_provider, print_summary, run_analysis, run_recent
from commitlens_store.models import AnalysisRecord, CriterionRecord, RefactoringRecord

console = Console()


def _summary_to_records(summary: CommitSummary) -> list[AnalysisRecord]:
    """Map a CommitSummary returned by run_analysis() to one AnalysisRecord per analysed file.

    The CLI layer owns this mapping - commitlens_core has no store knowledge and
    commitlens_store has no core knowledge. The CLI bridges the two.
    """
    records = []
    for f in summary.analyzed_files:
        result = f.result
        proposal = result.refactoring_proposal
        records.append(
            AnalysisRecord(
                repo=summary.repo,
                commit_sha=summary.sha,
                file_path=f.path,
                author=summary.author,
                committed_at=summary.date,
                analyzed_at=summary.analyzed_at,
                model=summary.model,
                overall_score=result.overall_score,
                overall_comment=result.overall_comment,
                change_kind=f.change_kind,
                lines_added=f.lines_added,
                lines_removed=f.lines_removed,
                criteria=[
                    CriterionRecord(
                        name=name,
                        score=c.score,
                        comment=c.comment,
                        subcriteria={sub_name: sub.score for sub_name, sub in c.subcriteria.items()},
                    )
                    for name, c in result.criteria.items()
                ],
                refactoring=RefactoringRecord(**proposal.to_dict()) if proposal else None,
            )
        )
    return records


def _open_repository(repo: str, token: str | None):
    """Return a local repository for a directory, a GitHub repository for owner/name."""
    if os.path.isdir(repo):
        from commitlens_core.vcs.local import LocalGitRepository

        return LocalGitRepository(repo)

    if repo.count("/") != 1:
        raise click.UsageError(f"{repo!r} is neither a local directory nor a GitHub owner/name slug.")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    from commitlens_core.vcs.github import GitHubRepository

    return GitHubRepository(repo, token=token)


@click.command("analyze")
@click.option("--repo", required=True, help="Local repository path or GitHub repository in owner/name format.")
@click.option("--commit", "commits", multiple=True, help="Commit to analyse. Repeat for several commits.")
@click.option(
    "--since-hours",
    type=int,
    default=24,
    show_default=True,
    help="Analyse every commit of this time window when no --commit is given.",
)
@click.option(
    "--provider",
    type=click.Choice(PROVIDERS),
    default=None,
    help="Model provider. Overrides config file.",
)
@click.option("--model-name", default=None, help="Model name passed to the provider. Overrides config file.")
@click.option("--workers", type=int, default=None, help="Files analysed in parallel per commit.")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print scores without saving them to the store.",
)
@click.pass_context
def analyze_cmd(
    ctx,
    repo: str,
    commits: tuple[str, ...],
    since_hours: int,
    provider: str | None,
    model_name: str | None,
    workers: int | None,
    shadow: bool,
):
    """Score the changed files of commits with a language model.

    Each changed code file is diffed against its parent revision, sent to the
    model with the scoring rubric, and scored on Clean Code, SOLID, Design
    Patterns, Testability and Security.

    \b
    Required environment variables:
      GITHUB_TOKEN         For owner/name repositories (or use gh CLI)
      ANTHROPIC_API_KEY    Required when using --provider anthropic
      OPENAI_API_KEY       Required when using --provider openai
      OLLAMA_HOST          Optional Ollama base URL
    """
    config = dict(ctx.obj["config"])
    overrides = {"provider": provider, "model_name": model_name, "max_workers": workers}
    config.update({key: value for key, value in overrides.items() if value is not None})

    if config["provider"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["provider"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")
    if config["provider"] not in PROVIDERS:
        raise click.UsageError(f"Unknown provider {config['provider']!r}. Choose one of: {', '.join(PROVIDERS)}.")

    repository = _open_repository(repo, config.get("github_token"))
    model = get_provider(config)

    if commits:
        summaries = [run_analysis(repository, sha, model, config) for sha in commits]
    else:
        summaries = run_recent(repository, model, config, since_hours=since_hours)

    store = ctx.obj.get("store")
    for summary in summaries:
        print_summary(summary)
        if shadow or store is None:
            continue
        for record in _summary_to_records(summary):
            store.save(record)
