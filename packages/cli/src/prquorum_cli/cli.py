"""CLI entry point for prquorum.

Commands:
  pending   open PRs waiting on your review, with group approval ratios
  approved  PRs you approved that are still open, and why
  diagnose  reviewer-by-reviewer breakdown of one PR
  group     how the designated review group resolves
  collect   infer a static reviewer list from closed PRs
  link      short base-62 references for PR numbers
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from prquorum_cli.commands.approved import approved_cmd
from prquorum_cli.commands.collect import collect_cmd
from prquorum_cli.commands.diagnose import diagnose_cmd
from prquorum_cli.commands.group import group_cmd
from prquorum_cli.commands.link import link_cmd
from prquorum_cli.commands.pending import pending_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # PyGithub and urllib3 are noisy at DEBUG.
    for name in ("github", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("prquorum"),
    prog_name="prquorum",
)
@click.option(
    "--config",
    "config_path",
    default=".prquorum.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRQUORUM_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log resolver and API activity.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Review-group approvals and blocking reasons for GitHub pull requests."""
    from prquorum_core.config import load_config
    from prquorum_cli.auth import resolve_github_token

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(pending_cmd)
main.add_command(approved_cmd)
main.add_command(diagnose_cmd)
main.add_command(group_cmd)
main.add_command(collect_cmd)
main.add_command(link_cmd)
