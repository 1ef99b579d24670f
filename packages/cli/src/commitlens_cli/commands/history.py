"""history command - display past analysis records from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from commitlens_core.analysis.models import CRITERIA

console = Console()


def _score_cell(score: int | None) -> str:
    if score is None:
        return "-"
    style = "green" if score >= 70 else "yellow" if score >= 50 else "red"
    return f"[{style}]{score}[/{style}]"


@click.command("history")
@click.option("--repo", required=True, help="Repository name as recorded by analyze (owner/name or directory name).")
@click.option("--commit", "commit_sha", default=None, help="Filter by commit sha.")
@click.option("--path", "file_path", default=None, help="Filter by file path.")
@click.option("--since", default=None, help="Only commits dated on or after this ISO-8601 date.")
@click.option("--until", default=None, help="Only commits dated on or before this ISO-8601 date.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(
    ctx,
    repo: str,
    commit_sha: str | None,
    file_path: str | None,
    since: str | None,
    until: str | None,
    limit: int,
):
    """Show past analysis records for a repository.

    Reads from the configured store (Gist or SQLite). Run `commitlens init` to
    set up a store if you haven't already.
    """
    from commitlens_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError(
            "No store configured. Add 'store: sqlite' or 'store: gist' to .commitlens.yml, "
            "or run `commitlens init` to set one up."
        )

    records = store.list_analyses(repo, commit_sha=commit_sha, file_path=file_path, since=since, until=until)
    if not records:
        console.print("[yellow]No analysis records found.[/yellow]")
        return

    # Most recent first, capped at --limit.
    records = list(reversed(records))[:limit]

    table = Table(title=f"Analysis History - {repo}", show_header=True, header_style="bold cyan")
    table.add_column("SHA", width=8)
    table.add_column("Author", max_width=20)
    table.add_column("File", max_width=40)
    for name in CRITERIA:
        table.add_column(name, justify="right")
    table.add_column("Overall", justify="right", style="bold")
    table.add_column("Committed At", width=20)

    for r in records:
        table.add_row(
            r.commit_sha[:7],
            r.author,
            r.file_path,
            *[_score_cell(r.score_of(name)) for name in CRITERIA],
            _score_cell(r.overall_score),
            r.committed_at[:19].replace("T", " "),
        )

    console.print(table)
