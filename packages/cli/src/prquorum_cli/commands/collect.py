"""collect: build a static reviewer list from pull request history.

The generated file is what the resolver falls back to when the review team
cannot be read (missing read:org scope, renamed team, API outage). Run it
periodically and commit the result next to .prquorum.yml.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table

from prquorum_cli.wiring import build_heuristic, require_token
from prquorum_core.gh.pull_request import GitHubSourceControl, get_client

console = Console()

DEFAULT_OUTPUT = ".prquorum-reviewers.yml"


@click.command("collect")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--limit", type=int, default=None, help="Closed pull requests to scan. Defaults to history_limit.")
@click.option("--top", default=25, show_default=True, help="Maximum number of reviewers to keep.")
@click.option("--output", default=DEFAULT_OUTPUT, show_default=True, help="Reviewers file to write.")
@click.option("--update-config/--no-update-config", default=True, help="Point reviewers_file in .prquorum.yml here.")
@click.pass_context
def collect_cmd(ctx, repo: str, limit: int | None, top: int, output: str, update_config: bool):
    """Infer the designated reviewers from recently closed pull requests.

    Counts people who were required reviewers or approved, drops bots and
    service accounts, and keeps those seen at least min_occurrences times.
    """
    config = ctx.obj["config"]
    limit = limit or config.get("history_limit", 500)
    heuristic = build_heuristic(config)

    client = get_client(require_token(config))
    source = GitHubSourceControl(client.get_repo(repo))

    console.print(f"[cyan]Scanning up to {limit} closed pull request(s) in {repo}...[/cyan]")
    items = source.list_recent_closed_items(limit)
    console.print(f"[dim]Fetched {len(items)} closed pull request(s).[/dim]")

    tallies = [t for t in heuristic.tally(items) if t.count >= heuristic.min_occurrences][:top]
    if not tallies:
        console.print(
            f"[yellow]No reviewer appeared in at least {heuristic.min_occurrences} pull request(s). "
            "Nothing written.[/yellow]"
        )
        return

    table = Table(title=f"Designated Reviewers: {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Login")
    table.add_column("Pull Requests", justify="right")
    for t in tallies:
        table.add_row(t.key, str(t.count))
    console.print(table)

    _write_reviewers(Path(output), repo, len(items), tallies)
    console.print(f"[green]Wrote {len(tallies)} reviewer(s) to {output}[/green]")

    if update_config:
        _write_config({"reviewers_file": output}, Path(ctx.obj.get("config_path", ".prquorum.yml")))
        console.print("[green]Updated reviewers_file in the config file[/green]")


def _write_reviewers(path: Path, repo: str, scanned: int, tallies) -> None:
    data = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "source": f"{scanned} closed pull request(s) in {repo}",
        "reviewers": [{"login": t.key, "display_name": t.display_name, "pull_requests": t.count} for t in tallies],
    }
    path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


def _write_config(updates: dict, path: Path) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(updates)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
