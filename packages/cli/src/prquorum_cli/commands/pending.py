"""pending: pull requests waiting on the current user's review."""

from __future__ import annotations

import json

import click
from rich.console import Console

from prquorum_cli.render import group_line, json_payload, pending_table, print_errors, split_results
from prquorum_cli.wiring import open_session
from prquorum_core.analysis import run_batch
from prquorum_core.capabilities import ItemFilter
from prquorum_core.models import VoteStatus

console = Console()


def is_pending_for_viewer(result) -> bool:
    """Required reviewer who has not given a full approval."""
    return result.outcome.vote_status not in (VoteStatus.APPROVED, VoteStatus.NOT_A_REVIEWER)


@click.command("pending")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.option("--workers", type=click.IntRange(1, 16), default=None, help="Concurrent pull request analyses.")
@click.option("--timeout", type=float, default=None, help="Give up on unfinished pull requests after N seconds.")
@click.pass_context
def pending_cmd(ctx, repo: str, as_json: bool, workers: int | None, timeout: float | None):
    """List open pull requests where you are a required reviewer and have not approved.

    \b
    Columns:
      Status  your vote (Apprvd, Sugges, NoVote, Wait4A, Reject)
      Ratio   review-group approvals / review-group reviewers (?/? = group unknown)
      Change  who did what most recently
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
    ok = [r for r in ok if is_pending_for_viewer(r)]
    short_base = config.get("short_url_base")

    if as_json:
        click.echo(json.dumps(json_payload(ok + errors, session.resolved_group, repo, short_base), indent=2))
        return

    console.print(group_line(session.group_name, session.resolved_group))
    if not ok:
        console.print("[green]No pull requests are waiting on your review.[/green]")
    else:
        console.print(pending_table(ok, repo, short_base))
    print_errors(errors)
