"""diagnose: reviewer details and classification for one pull request."""

from __future__ import annotations

import dataclasses
import json

import click
from github import GithubException
from rich.console import Console
from rich.table import Table

from prquorum_cli.render import REASON_LABEL, STATUS_LABEL, group_line
from prquorum_cli.wiring import open_session
from prquorum_core.classifier import describe_vote, is_system_reviewer
from prquorum_core.codec import ValidationError, route_item_id

console = Console()


@click.command("diagnose")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_ref", required=True, help="Pull request number or short base-62 id.")
@click.option("--json", "as_json", is_flag=True, help="Print diagnostics as JSON.")
@click.pass_context
def diagnose_cmd(ctx, repo: str, pr_ref: str, as_json: bool):
    """Explain how a single pull request is classified.

    Lists every reviewer with their vote, whether they are required, and
    whether they count towards the review group, then the resulting status.
    """
    try:
        pr_number = route_item_id(pr_ref)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="--pr")

    session, source = open_session(ctx.obj["config"], repo)
    try:
        snapshot = source.get_item(pr_number)
    except GithubException:
        raise click.UsageError(f"PR #{pr_number} not found in {repo}.")
    try:
        snapshot = dataclasses.replace(snapshot, recent_activity=source.get_activity(pr_number))
    except GithubException as e:
        console.print(f"[yellow]Could not read recent activity: {e}[/yellow]")

    resolved = session.resolved_group
    outcome = session.classify(snapshot)

    reviewers = [
        {
            "id": r.identity.id,
            "name": r.identity.display_name,
            "kind": r.identity.kind.value,
            "vote": r.vote,
            "required": r.is_required,
            "in_group": resolved.contains(r.identity),
            "system": is_system_reviewer(r.identity),
        }
        for r in snapshot.reviewers
    ]

    if as_json:
        ratio = outcome.approval_ratio
        payload = {
            "id": snapshot.id,
            "title": snapshot.title,
            "author": snapshot.author_name,
            "is_open": snapshot.is_open,
            "review_group": resolved.diagnostics(),
            "reviewers": reviewers,
            "vote_status": outcome.vote_status.value,
            "approval_ratio": str(ratio) if ratio is not None else None,
            "pending_reason": outcome.pending_reason.value,
            "last_change": outcome.last_change,
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(f"\n[bold]PR #{snapshot.id}[/bold]  {snapshot.title}")
    console.print(f"  Author:  {snapshot.author_name}")
    console.print(f"  State:   {'open' if snapshot.is_open else 'closed'}")
    console.print(f"  {group_line(session.group_name, resolved)}")

    table = Table(title="Reviewers", show_header=True, header_style="bold cyan")
    table.add_column("Reviewer")
    table.add_column("Vote")
    table.add_column("Required", justify="center")
    table.add_column("In Group", justify="center")
    for r, info in zip(snapshot.reviewers, reviewers):
        name = f"[dim]{info['name']}[/dim]" if info["system"] else info["name"]
        table.add_row(
            name,
            f"{r.vote} ({describe_vote(r.vote) if r.vote else 'No Vote'})",
            "yes" if r.is_required else "",
            "yes" if info["in_group"] else "",
        )
    console.print(table)

    ratio = outcome.approval_ratio
    console.print(f"  Your status:  {STATUS_LABEL[outcome.vote_status]}")
    console.print(f"  Group ratio:  {ratio if ratio is not None else '?/?'}")
    console.print(f"  Pending:      {REASON_LABEL[outcome.pending_reason]} ({outcome.pending_reason.value})")
    console.print(f"  Last change:  {outcome.last_change}")
