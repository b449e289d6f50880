"""CLI entry point for policylens.

Commands:
  check    — check a proposed commit (commit-msg hook) or a range of commits
  branch   — check the current branch's name, age and issue link
  cycle    — start, inspect and squash a RED/GREEN/REFACTOR unit of work
  pr       — check every commit of a GitHub pull request
  rules    — list the effective rule catalog
  history  — display past check records from the configured store
  stats    — aggregate violation patterns across check history
  init     — write .policylens.yml and install git hooks
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from policylens_cli.commands.branch import branch_cmd
from policylens_cli.commands.check import check_cmd
from policylens_cli.commands.cycle import cycle_group
from policylens_cli.commands.history import history_cmd
from policylens_cli.commands.init import init_cmd
from policylens_cli.commands.pr import pr_cmd
from policylens_cli.commands.rules import rules_cmd
from policylens_cli.commands.stats import stats_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .policylens.yml settings.

    Store selection:
      store: gist   → GistStore  (requires gist_id and a GitHub token)
      store: sqlite → SQLiteStore (store_path, default .policylens.db)
      (default)     → NoOpStore  (no persistence)
    """
    from policylens_store.noop import NoOpStore

    store_type = config.get("store", "noop")

    if store_type == "gist":
        from policylens_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and a GitHub token. Falling back to no store.[/yellow]")
            return NoOpStore()
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from policylens_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path", ".policylens.db"))

    return NoOpStore()


@click.group()
@click.version_option(
    version=importlib.metadata.version("policylens"),
    prog_name="policylens",
)
@click.option(
    "--config",
    "config_path",
    default=".policylens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="POLICYLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Development-policy compliance checks for commits, branches and TDD cycles."""
    from policylens_core.config import load_config
    from policylens_cli.auth import resolve_github_token

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, OSError) as e:
        raise click.UsageError(str(e))

    # Only the gist store and the pr command need a token; resolving it here
    # keeps both on the same source.
    if config.get("store") == "gist" or ctx.invoked_subcommand == "pr":
        token = resolve_github_token()
        if token:
            config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(check_cmd)
main.add_command(branch_cmd)
main.add_command(cycle_group)
main.add_command(pr_cmd)
main.add_command(rules_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
main.add_command(init_cmd)
