"""init command - interactive setup wizard for new teams.

Writes .commitlens.yml, optionally creates the team Gist that holds shared
analysis history, and generates .github/workflows/commitlens.yml so every
push to the default branch is scored in CI.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click
import yaml
from rich.console import Console

from commitlens_core.pipeline import PROVIDERS

console = Console()
logger = logging.getLogger(__name__)

_GIST_FILENAME = "commitlens_history.json"

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

_WORKFLOW_TEMPLATE = """\
name: Commit Lens

on:
  push:
    branches: [main]

jobs:
  analyze:
    runs-on: ubuntu-latest
    permissions:
      contents: read

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 0

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install commitlens
        run: pip install "commitlens[{provider}]=={version}"

      - name: Analyse pushed commits
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
{env_lines}        run: |
          commitlens analyze --repo . --since-hours 24
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
@click.pass_context
def init_cmd(ctx, repo: str | None):
    """Set up commitlens for your team.

    Creates .commitlens.yml, optionally creates a shared GitHub Gist for team
    history, and generates a GitHub Actions workflow.
    """
    config_path = (ctx.obj or {}).get("config_path", ".commitlens.yml")
    console.print("\n[bold cyan]commitlens init[/bold cyan] - team setup wizard\n")

    # --- Detect repo from git remote ---
    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    # --- Choose provider ---
    provider = click.prompt(
        "Model provider",
        type=click.Choice(PROVIDERS),
        default="anthropic",
    )
    api_key_env = _API_KEY_ENV.get(provider)

    config: dict = {"provider": provider}
    if provider == "ollama":
        config["ollama_url"] = click.prompt("Ollama URL", default="http://localhost:11434")

    # --- Choose store backend ---
    console.print("\nAnalysis history store:")
    console.print("  [bold]none[/bold]    - no persistence (default)")
    console.print("  [bold]sqlite[/bold]  - local SQLite file (good for solo use)")
    console.print("  [bold]gist[/bold]    - shared GitHub Gist, zero infrastructure (recommended for teams)")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["none", "sqlite", "gist"]),
        default="none",
    )

    if store_type == "sqlite":
        db_path = click.prompt("SQLite database path", default=".commitlens.db")
        config["store"] = "sqlite"
        if db_path != ".commitlens.db":
            config["store_path"] = db_path
        console.print(f"[green]SQLite store configured at {db_path}[/green]")

    elif store_type == "gist":
        console.print(
            "\n[yellow]Note:[/yellow] Gist store requires a token with [bold]gist[/bold] scope. "
            "The built-in GITHUB_TOKEN in Actions does not cover Gists - "
            "use a PAT stored as a repository secret (e.g. COMMITLENS_GITHUB_TOKEN)."
        )
        gist_id = _create_team_gist(repo)
        if gist_id:
            console.print(f"[green]Created team Gist: {gist_id}[/green]")
            config["store"] = "gist"
            config["gist_id"] = gist_id
        else:
            console.print(f"[yellow]Gist creation failed - add gist_id manually to {config_path}[/yellow]")

    _write_config(config, config_path)
    console.print(f"[green]Created {config_path}[/green]")

    # --- GitHub Actions workflow ---
    setup_ci = click.confirm("\nGenerate .github/workflows/commitlens.yml for GitHub Actions?", default=True)
    if setup_ci:
        _write_workflow(provider, api_key_env)
        console.print("[green]Created .github/workflows/commitlens.yml[/green]")
        if api_key_env:
            console.print(
                f"\n[yellow]Remember to add [bold]{api_key_env}[/bold] to your "
                "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
            )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Analyse a commit with: [bold]commitlens analyze --repo . --commit HEAD[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@github.com:owner/repo.git      →  owner/repo
        if "github.com" not in url:
            return None
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        return slug if "/" in slug else None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _create_team_gist(repo: str) -> str | None:
    """Create a private Gist for team analysis history and return its ID."""
    try:
        # gh names Gist files after their path, so the file must carry the final name.
        tmp_dir = tempfile.mkdtemp(prefix="commitlens_")
        named_path = os.path.join(tmp_dir, _GIST_FILENAME)
        with open(named_path, "w") as tmp:
            tmp.write("[]")

        try:
            result = subprocess.run(
                [
                    "gh",
                    "gist",
                    "create",
                    "--public=false",
                    "--desc",
                    f"commitlens analysis history for {repo}",
                    named_path,
                ],
                capture_output=True,
                text=True,
                timeout=15,
            )
        finally:
            os.unlink(named_path)
            os.rmdir(tmp_dir)

        if result.returncode == 0:
            gist_url = result.stdout.strip()
            return gist_url.rstrip("/").split("/")[-1]
        logger.warning("gh gist create failed: %s", result.stderr.strip())
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass
    return None


def _write_config(config: dict, config_path: str = ".commitlens.yml") -> None:
    """Write or update the config file, preserving any existing keys."""
    path = Path(config_path)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    """Read the current commitlens version from the installed package metadata."""
    try:
        return version("commitlens")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow(provider: str, api_key_env: str | None) -> None:
    """Write the GitHub Actions workflow file."""
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    env_lines = f"          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}\n" if api_key_env else ""
    extra = provider if provider in _API_KEY_ENV else "all"
    (workflow_dir / "commitlens.yml").write_text(
        _WORKFLOW_TEMPLATE.format(provider=extra, env_lines=env_lines, version=_get_version())
    )
