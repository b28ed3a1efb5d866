"""Terminal and JSON rendering of analysis results."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.console import Console
from rich.table import Table

from prquorum_core.classifier import format_age
from prquorum_core.links import item_url
from prquorum_core.models import ItemError, ItemResult, PendingReason, ResolutionTier, ResolvedReviewGroup, VoteStatus

console = Console()

STATUS_LABEL = {
    VoteStatus.APPROVED: "Apprvd",
    VoteStatus.APPROVED_WITH_SUGGESTIONS: "Sugges",
    VoteStatus.NO_VOTE: "NoVote",
    VoteStatus.WAITING_FOR_AUTHOR: "Wait4A",
    VoteStatus.REJECTED: "Reject",
    VoteStatus.UNKNOWN: "Unknow",
    VoteStatus.NOT_A_REVIEWER: "---",
}

REASON_LABEL = {
    PendingReason.REJECTED: "REJ",
    PendingReason.WAITING_FOR_AUTHOR: "WFA",
    PendingReason.PENDING_REQUIRED_REVIEWER_APPROVAL: "PRA",
    PendingReason.PENDING_OTHER_APPROVAL: "POA",
    PendingReason.POLICY_OR_BUILD_BLOCKED: "POL",
}

REASON_LEGEND = (
    "REJ=Rejected, WFA=Waiting For Author, POL=Policy/Build Issues, "
    "PRA=Pending Reviewer Approval, POA=Pending Other Approvals"
)

_STATUS_STYLE = {
    VoteStatus.APPROVED: "green",
    VoteStatus.APPROVED_WITH_SUGGESTIONS: "green",
    VoteStatus.WAITING_FOR_AUTHOR: "yellow",
    VoteStatus.REJECTED: "red",
}

_TIER_STYLE = {
    ResolutionTier.LIVE: "green",
    ResolutionTier.STATIC_FALLBACK: "yellow",
    ResolutionTier.HEURISTIC: "yellow",
    ResolutionTier.UNRESOLVED: "red",
}


def ratio_label(result: ItemResult) -> str:
    ratio = result.outcome.approval_ratio
    return str(ratio) if ratio is not None else "?/?"


def shorten_title(title: str, width: int = 40) -> str:
    title = " ".join(title.split())
    return title if len(title) <= width else title[: width - 3] + "..."


def group_line(group_name: str | None, resolved: ResolvedReviewGroup) -> str:
    style = _TIER_STYLE.get(resolved.tier, "white")
    return (
        f"Review group [bold]{group_name or '(none)'}[/bold]: "
        f"{len(resolved.members)} member(s) via [{style}]{resolved.tier.value}[/{style}]"
    )


def split_results(results: list) -> tuple[list[ItemResult], list[ItemError]]:
    ok = [r for r in results if isinstance(r, ItemResult)]
    errors = [r for r in results if isinstance(r, ItemError)]
    return ok, errors


def print_errors(errors: list[ItemError]) -> None:
    if not errors:
        return
    console.print(f"\n[red]{len(errors)} pull request(s) could not be analyzed:[/red]")
    for e in errors:
        console.print(f"  [bold]#{e.id}[/bold]  {e.reason}: {e.message}")


def pending_table(results: list[ItemResult], repo: str, short_base: str | None = None, now: datetime | None = None):
    now = now or datetime.now(timezone.utc)
    table = Table(title=f"Pending Reviews: {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Title", max_width=30)
    table.add_column("Status", width=6)
    table.add_column("Author", max_width=18)
    table.add_column("Age", width=6)
    table.add_column("Ratio", width=6)
    table.add_column("Change", max_width=24)
    table.add_column("URL", overflow="fold")

    for r in results:
        status = r.outcome.vote_status
        style = _STATUS_STYLE.get(status, "white")
        table.add_row(
            shorten_title(r.snapshot.title, 30),
            f"[{style}]{STATUS_LABEL[status]}[/{style}]",
            r.snapshot.author_name,
            format_age(r.snapshot.created_at, now),
            ratio_label(r),
            r.outcome.last_change,
            item_url(repo, r.id, short_base),
        )
    return table


def approved_table(results: list[ItemResult], repo: str, short_base: str | None = None, now: datetime | None = None):
    now = now or datetime.now(timezone.utc)
    table = Table(title=f"Approved, Not Yet Merged: {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Author", max_width=25)
    table.add_column("Title", max_width=40)
    table.add_column("Why", width=4)
    table.add_column("Age", width=6)
    table.add_column("URL", overflow="fold")

    for r in results:
        table.add_row(
            r.snapshot.author_name,
            shorten_title(r.snapshot.title),
            REASON_LABEL[r.outcome.pending_reason],
            format_age(r.snapshot.created_at, now),
            item_url(repo, r.id, short_base),
        )
    return table


def json_payload(results: list, resolved: ResolvedReviewGroup, repo: str, short_base: str | None = None) -> dict:
    items = []
    for r in results:
        entry = r.to_dict()
        entry["url"] = item_url(repo, r.id, short_base)
        items.append(entry)
    return {"repo": repo, "review_group": resolved.diagnostics(), "items": items}
