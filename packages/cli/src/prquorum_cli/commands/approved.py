"""approved: pull requests you approved that are still open."""

from __future__ import annotations

import json

import click
from rich.console import Console

from prquorum_cli.render import REASON_LEGEND, approved_table, group_line, json_payload, print_errors, split_results
from prquorum_cli.wiring import open_session
from prquorum_core.analysis import run_batch
from prquorum_core.capabilities import ItemFilter
from prquorum_core.models import VoteStatus

console = Console()


@click.command("approved")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.option("--workers", type=click.IntRange(1, 16), default=None, help="Concurrent pull request analyses.")
@click.option("--timeout", type=float, default=None, help="Give up on unfinished pull requests after N seconds.")
@click.pass_context
def approved_cmd(ctx, repo: str, as_json: bool, workers: int | None, timeout: float | None):
    """Show pull requests you approved that have not been merged, and why.

    The Why column is the highest-priority reason the pull request is still
    open, from rejections down to policy or build gates.
    """
    config = ctx.obj["config"]
    session, source = open_session(config, repo)

    results = run_batch(
        session,
        source,
        ItemFilter(state="open", reviewer=session.viewer.unique_name if session.viewer else None),
        max_workers=workers or config.get("max_workers", 8),
        timeout=timeout if timeout is not None else config.get("timeout"),
    )
    ok, errors = split_results(results)
    ok = [r for r in ok if r.outcome.vote_status is VoteStatus.APPROVED]
    short_base = config.get("short_url_base")

    if as_json:
        click.echo(json.dumps(json_payload(ok + errors, session.resolved_group, repo, short_base), indent=2))
        return

    console.print(group_line(session.group_name, session.resolved_group))
    if not ok:
        console.print("[yellow]No approved pull requests are waiting to be merged.[/yellow]")
    else:
        console.print("Reason why the pull request is not completed:")
        console.print(f"  [dim]{REASON_LEGEND}[/dim]")
        console.print(approved_table(ok, repo, short_base))
    print_errors(errors)
