"""group: show how the review group resolves."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from prquorum_cli.render import group_line
from prquorum_cli.wiring import build_resolver, require_token
from prquorum_core.gh.pull_request import GitHubSourceControl, get_client

console = Console()


@click.command("group")
@click.option("--repo", default=None, help="Repository whose history backs the heuristic tier (owner/name).")
@click.option("--name", "group_name", default=None, help="Review group display name. Overrides config file.")
@click.option("--org", default=None, help="GitHub organisation owning the group. Overrides config file.")
@click.option("--json", "as_json", is_flag=True, help="Print diagnostics as JSON.")
@click.pass_context
def group_cmd(ctx, repo: str | None, group_name: str | None, org: str | None, as_json: bool):
    """Resolve the designated review group and report which tier produced it.

    Tiers are tried in order: live team membership, the static reviewer list,
    then reviewers inferred from recently closed pull requests (needs --repo).
    """
    config = dict(ctx.obj["config"])
    if org:
        config["org"] = org
    if not config.get("org") and repo:
        config["org"] = repo.split("/", 1)[0]
    group_name = group_name or config.get("review_group")
    if not group_name:
        raise click.UsageError("No review group configured. Pass --name or set review_group in .prquorum.yml.")

    client = get_client(require_token(config))
    history = GitHubSourceControl(client.get_repo(repo)) if repo else None
    resolved = build_resolver(config, client, history=history).resolve(group_name)

    if as_json:
        payload = {"group": group_name, **resolved.diagnostics(), "members": sorted(resolved.members)}
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(group_line(group_name, resolved))
    if resolved.members:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Member")
        for member in sorted(resolved.members):
            table.add_row(member)
        console.print(table)
