"""stats command - aggregate scores across analysis history."""

from __future__ import annotations

from collections import defaultdict

import click
from rich.console import Console
from rich.table import Table

from commitlens_core.analysis.models import CRITERIA

console = Console()


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


@click.command("stats")
@click.option("--repo", required=True, help="Repository name as recorded by analyze (owner/name or directory name).")
@click.option("--top", default=10, show_default=True, help="Number of entries to show per category.")
@click.pass_context
def stats_cmd(ctx, repo: str, top: int):
    """Show aggregated score statistics for a repository.

    Reports the average score per criterion, per author, and the
    lowest-scoring files - useful for spotting where refactoring effort pays off.
    """
    from commitlens_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError(
            "No store configured. Add 'store: sqlite' or 'store: gist' to .commitlens.yml, "
            "or run `commitlens init` to set one up."
        )

    records = store.list_analyses(repo)
    if not records:
        console.print("[yellow]No analysis records found for this repository.[/yellow]")
        return

    commits = {r.commit_sha for r in records}
    criterion_scores: dict[str, list[int]] = defaultdict(list)
    author_scores: dict[str, list[int]] = defaultdict(list)
    file_scores: dict[str, list[int]] = defaultdict(list)

    for record in records:
        author_scores[record.author or "unknown"].append(record.overall_score)
        file_scores[record.file_path].append(record.overall_score)
        for criterion in record.criteria:
            criterion_scores[criterion.name].append(criterion.score)

    # --- Summary ---
    console.print(f"\n[bold]Score stats for [cyan]{repo}[/cyan][/bold]")
    console.print(f"  Commits analysed: {len(commits)}")
    console.print(f"  Files analysed:   {len(records)}")
    console.print(f"  Average score:    {_mean([r.overall_score for r in records]):.1f}")

    # --- Criterion averages ---
    crit_table = Table(title="Average by Criterion", show_header=True)
    crit_table.add_column("Criterion", style="bold")
    crit_table.add_column("Average", justify="right")
    crit_table.add_column("Min", justify="right")
    crit_table.add_column("Max", justify="right")
    for name in CRITERIA:
        scores = criterion_scores.get(name, [])
        if not scores:
            continue
        crit_table.add_row(name, f"{_mean(scores):.1f}", str(min(scores)), str(max(scores)))
    console.print(crit_table)

    # --- Authors ---
    author_table = Table(title=f"Top {top} Authors by Files Analysed", show_header=True)
    author_table.add_column("Author")
    author_table.add_column("Files", justify="right")
    author_table.add_column("Average", justify="right")
    ranked_authors = sorted(author_scores.items(), key=lambda item: len(item[1]), reverse=True)
    for author, scores in ranked_authors[:top]:
        author_table.add_row(author, str(len(scores)), f"{_mean(scores):.1f}")
    console.print(author_table)

    # --- Lowest-scoring files ---
    file_table = Table(title=f"Top {top} Lowest-Scoring Files", show_header=True)
    file_table.add_column("File")
    file_table.add_column("Analyses", justify="right")
    file_table.add_column("Average", justify="right")
    ranked_files = sorted(file_scores.items(), key=lambda item: _mean(item[1]))
    for file_path, scores in ranked_files[:top]:
        file_table.add_row(file_path, str(len(scores)), f"{_mean(scores):.1f}")
    console.print(file_table)
