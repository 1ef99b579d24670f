"""CLI entry point for commitlens.

Commands:
  analyze    - score the changed files of one or more commits
  diff       - print the line diff of one file in a commit
  interpret  - turn a raw model response into a structured analysis
  history    - display past analysis records from the configured store
  stats      - aggregate scores across analysis history
  init       - interactive setup wizard for new teams
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from commitlens_cli.commands.analyze import analyze_cmd
from commitlens_cli.commands.diff import diff_cmd
from commitlens_cli.commands.history import history_cmd
from commitlens_cli.commands.init import init_cmd
from commitlens_cli.commands.interpret import interpret_cmd
from commitlens_cli.commands.stats import stats_cmd

console = Console()


def configure_logging(verbosity: int) -> None:
    """Configure the root logger from a -v count.

    verbosity == 0 -> WARNING
    verbosity == 1 -> INFO
    verbosity >= 2 -> DEBUG
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_store(config: dict):
    """Instantiate the configured store from .commitlens.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore  (requires gist_id and github_token)
      store: sqlite → SQLiteStore (requires store_path or uses .commitlens.db)
      (default)     → NoOpStore  (no persistence)

    This factory lives in cli.py so neither commitlens_core nor commitlens_store
    know about the CLI config format.
    """
    from commitlens_store.noop import NoOpStore

    store_type = config.get("store", "noop")

    if store_type == "gist":
        from commitlens_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and a GitHub token. Falling back to no store.[/yellow]")
            return NoOpStore()
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from commitlens_store.sqlite import SQLiteStore

        db_path = config.get("store_path", ".commitlens.db")
        return SQLiteStore(db_path=db_path)

    return NoOpStore()


@click.group()
@click.version_option(
    version=importlib.metadata.version("commitlens"),
    prog_name="commitlens",
)
@click.option(
    "--config",
    "config_path",
    default=".commitlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="COMMITLENS_CONFIG",
)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: int):
    """AI-assisted code quality scoring for commit history."""
    from commitlens_cli.auth import resolve_github_token
    from commitlens_core.config import load_config

    configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.call_on_close(store.close)


main.add_command(analyze_cmd)
main.add_command(diff_cmd)
main.add_command(interpret_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
main.add_command(init_cmd)
