"""diff command - print the line diff of one file in a commit."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from commitlens_cli.commands.analyze import _open_repository
from commitlens_core.diff import DiffKind, compute_diff, diff_stats

console = Console()

_KIND_STYLE = {
    DiffKind.ADDED: ("+ ", "green"),
    DiffKind.REMOVED: ("- ", "red"),
    DiffKind.UNCHANGED: ("  ", "dim"),
}


@click.command("diff")
@click.option("--repo", required=True, help="Local repository path or GitHub repository in owner/name format.")
@click.option("--commit", "sha", required=True, help="Commit whose change to show.")
@click.option("--path", "file_path", required=True, help="Path of the file inside the repository.")
@click.pass_context
def diff_cmd(ctx, repo: str, sha: str, file_path: str):
    """Show how a file changed in a commit, line by line, against its parent."""
    config = ctx.obj["config"]
    repository = _open_repository(repo, config.get("github_token"))

    parent = repository.get_parent_revision(sha)
    original = repository.get_file_content_at_revision(parent, file_path) if parent else None
    modified = repository.get_file_content_at_revision(sha, file_path)
    if original is None and modified is None:
        raise click.UsageError(f"{file_path} does not exist in {sha} or its parent.")

    entries = compute_diff(
        original or "",
        modified or "",
        max_chars=config.get("max_chars_per_file", 100000),
        max_lines=config.get("max_lines_per_file", 1000),
    )
    for entry in entries:
        prefix, style = _KIND_STYLE[entry.kind]
        console.print(f"[{style}]{prefix}{escape(entry.text)}[/{style}]", highlight=False)

    added, removed = diff_stats(entries)
    console.print(f"\n[bold]{file_path}[/bold]: [green]+{added}[/green] [red]-{removed}[/red]")
