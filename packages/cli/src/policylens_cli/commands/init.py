"""init command — interactive setup for a repository.

Writes .policylens.yml, installs the commit-msg and pre-push git hooks, and
optionally generates a GitHub Actions workflow that checks every pull request.
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
import tempfile
from pathlib import Path

import click
import yaml
from rich.console import Console

from policylens_core.utils import git

console = Console()
logger = logging.getLogger(__name__)

HOOK_MARKER = "# installed by policylens"

_HOOKS = {
    "commit-msg": f"""#!/bin/sh
{HOOK_MARKER}
exec policylens check --message-file "$1" --staged
""",
    "pre-push": f"""#!/bin/sh
{HOOK_MARKER}
exec policylens branch
""",
}

_WORKFLOW_TEMPLATE = """\
name: Policy Compliance

on:
  pull_request:
    types: [opened, synchronize, reopened, edited]

jobs:
  policylens:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install policylens
        run: pip install "policylens=={version}"

      - name: Check pull request
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: |
          policylens pr \\
            --repo ${{{{ github.repository }}}} \\
            --pr ${{{{ github.event.pull_request.number }}}} \\
            --comment --yes
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up policylens for this repository."""
    console.print("\n[bold cyan]policylens init[/bold cyan] — repository setup\n")

    if repo is None:
        repo = git.repo_slug()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("Repository (owner/name)")

    max_age = click.prompt("Maximum branch age in days", type=int, default=2)
    require_issue = click.confirm("Require every branch to be linked to an issue?", default=True)

    console.print("\nCheck history store:")
    console.print("  [bold]none[/bold]    — no persistence (default)")
    console.print("  [bold]sqlite[/bold]  — local SQLite file")
    console.print("  [bold]gist[/bold]    — shared private GitHub Gist")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["none", "sqlite", "gist"]),
        default="none",
    )

    config: dict = {"branch_max_age_days": max_age, "require_issue_link": require_issue}

    if store_type == "sqlite":
        db_path = click.prompt("SQLite database path", default=".policylens.db")
        config["store"] = "sqlite"
        if db_path != ".policylens.db":
            config["store_path"] = db_path
        console.print(f"[green]SQLite store configured at {db_path}[/green]")

    elif store_type == "gist":
        gist_id = _create_history_gist(repo)
        if gist_id:
            console.print(f"[green]Created history Gist: {gist_id}[/green]")
            config["store"] = "gist"
            config["gist_id"] = gist_id
        else:
            console.print("[yellow]Gist creation failed — add gist_id manually to .policylens.yml[/yellow]")

    _write_config(config)
    console.print("[green]Created .policylens.yml[/green]")

    if click.confirm("\nInstall commit-msg and pre-push git hooks?", default=True):
        installed = install_hooks()
        if installed:
            console.print(f"[green]Installed hooks: {', '.join(installed)}[/green]")

    if click.confirm("Generate .github/workflows/policylens.yml for GitHub Actions?", default=True):
        _write_workflow()
        console.print("[green]Created .github/workflows/policylens.yml[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Start a unit of work with: [bold]policylens cycle start <name>[/bold]")


def install_hooks(hooks_dir: Path | None = None) -> list[str]:
    """Write the git hooks; an existing hook not written by policylens is left alone."""
    hooks_dir = hooks_dir or git.hooks_dir()
    if hooks_dir is None:
        console.print("[yellow]Not inside a git repository; hooks not installed.[/yellow]")
        return []
    hooks_dir.mkdir(parents=True, exist_ok=True)

    installed = []
    for name, script in _HOOKS.items():
        path = hooks_dir / name
        if path.exists() and HOOK_MARKER not in path.read_text(errors="replace"):
            console.print(f"[yellow]Keeping existing {name} hook; add `policylens` to it manually.[/yellow]")
            continue
        path.write_text(script)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        installed.append(name)
    return installed


def _create_history_gist(repo: str) -> str | None:
    """Create a private Gist for check history via the gh CLI and return its ID."""
    tmp_dir = tempfile.mkdtemp()
    named_path = os.path.join(tmp_dir, "policylens_history.json")
    try:
        # gh names the Gist file after the path, so the temp file carries the final name.
        with open(named_path, "w") as f:
            f.write("[]")
        result = subprocess.run(
            ["gh", "gist", "create", "--desc", f"policylens check history for {repo}", named_path],
            capture_output=True,
            text=True,
            timeout=15,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    finally:
        if os.path.exists(named_path):
            os.unlink(named_path)
        os.rmdir(tmp_dir)

    if result.returncode == 0:
        return result.stdout.strip().rstrip("/").split("/")[-1]
    logger.warning("gh gist create failed: %s", result.stderr.strip())
    return None


def _write_config(config: dict) -> None:
    """Write or update .policylens.yml, preserving any existing keys."""
    path = Path(".policylens.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("policylens")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow() -> None:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    (workflow_dir / "policylens.yml").write_text(_WORKFLOW_TEMPLATE.format(version=_get_version()))
