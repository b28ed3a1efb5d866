"""GitHub-backed SourceControl and History capabilities.

GitHub has no five-valued vote, so each reviewer's vote is derived from
their latest decisive review: APPROVED counts as an approval, CHANGES_REQUESTED
as waiting for the author, anything else as no vote. Reviewers who are still
requested, or who submitted a decisive review, are required; comment-only
reviewers are optional. Requested teams appear as group reviewers.
"""

from __future__ import annotations

import logging

from github import Github

from prquorum_core.capabilities import History, ItemFilter, SourceControl
from prquorum_core.models import (
    ActivityDescriptor,
    Identity,
    IdentityKind,
    PullRequestSnapshot,
    ReviewerVote,
)

logger = logging.getLogger(__name__)

_STATE_VOTE = {"APPROVED": 10, "CHANGES_REQUESTED": -5}
_DECISIVE_STATES = set(_STATE_VOTE)

_REVIEW_ACTION = {
    "APPROVED": "Approved",
    "CHANGES_REQUESTED": "Requested Changes",
    "COMMENTED": "Added Comment",
    "DISMISSED": "Dismissed Review",
}


def get_client(token: str) -> Github:
    return Github(token)


def get_repo(repo_name: str, token: str):
    return get_client(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def user_identity(user) -> Identity:
    # login doubles as display name: reading user.name costs an extra API call per user.
    kind = IdentityKind.SERVICE_ACCOUNT if getattr(user, "type", "User") == "Bot" else IdentityKind.INDIVIDUAL
    return Identity(id=str(user.id), display_name=user.login, kind=kind, unique_name=user.login)


def team_identity(team, org_login: str) -> Identity:
    return Identity(
        id=f"team:{team.id}",
        display_name=f"[{org_login}]/{team.slug}",
        kind=IdentityKind.GROUP,
        unique_name=f"{org_login}/{team.slug}",
    )


def get_viewer(client: Github) -> Identity:
    """Identity of the authenticated user."""
    return user_identity(client.get_user())


def collect_reviewers(pr, org_login: str) -> tuple[ReviewerVote, ...]:
    """Build the reviewer list for a pull request from its reviews and open requests."""
    author_id = pr.user.id if pr.user is not None else None
    latest: dict[int, tuple] = {}  # user id -> (user, state)

    for review in pr.get_reviews():
        user = review.user
        if user is None or user.id == author_id:
            continue
        state = (review.state or "").upper()
        _, previous = latest.get(user.id, (user, None))
        if state in _DECISIVE_STATES or state == "DISMISSED":
            latest[user.id] = (user, state)
        elif previous is None:
            latest[user.id] = (user, state)

    users, teams = pr.get_review_requests()
    requested = {u.id: u for u in users}

    reviewers: list[ReviewerVote] = []
    for user_id, (user, state) in latest.items():
        reviewers.append(
            ReviewerVote(
                identity=user_identity(user),
                vote=_STATE_VOTE.get(state, 0),
                is_required=state in _DECISIVE_STATES or user_id in requested,
            )
        )
    for user_id, user in requested.items():
        if user_id not in latest:
            reviewers.append(ReviewerVote(identity=user_identity(user), vote=0, is_required=True))
    for team in teams:
        reviewers.append(ReviewerVote(identity=team_identity(team, org_login), vote=0, is_required=True))
    return tuple(reviewers)


def snapshot_from_pull(pr, org_login: str) -> PullRequestSnapshot:
    author = pr.user
    return PullRequestSnapshot(
        id=pr.number,
        author_id=str(author.id) if author is not None else "",
        created_at=pr.created_at,
        reviewers=collect_reviewers(pr, org_login),
        title=pr.title or "",
        author_name=author.login if author is not None else "",
        is_open=pr.state == "open",
    )


def latest_activity(pr) -> ActivityDescriptor | None:
    """Merge comments, reviews and pushes into the single most recent change."""
    events: list[tuple] = []  # (when, user, action)

    for comment in pr.get_issue_comments():
        events.append((comment.updated_at or comment.created_at, comment.user, "Added Comment"))
    for comment in pr.get_review_comments():
        events.append((comment.updated_at or comment.created_at, comment.user, "Added Comment"))
    for review in pr.get_reviews():
        if review.submitted_at is not None:
            action = _REVIEW_ACTION.get((review.state or "").upper(), "Reviewed")
            events.append((review.submitted_at, review.user, action))
    for commit in pr.get_commits():
        pushed_at = commit.commit.committer.date if commit.commit.committer else None
        if pushed_at is not None:
            # Commits are attributed to the pull request author.
            events.append((pushed_at, pr.user, "Pushed Code"))

    events = [e for e in events if e[0] is not None and e[1] is not None]
    if not events:
        return None
    when, user, action = max(events, key=lambda e: e[0])
    return ActivityDescriptor(actor_id=str(user.id), action=action, at=when)


def _has_reviewer(snapshot: PullRequestSnapshot, reviewer: str) -> bool:
    wanted = reviewer.lower()
    for r in snapshot.reviewers:
        if r.identity.id == reviewer or (r.identity.unique_name or "").lower() == wanted:
            return True
    return False


class GitHubSourceControl(SourceControl, History):
    """Pull requests of one repository as snapshots."""

    def __init__(self, repo):
        self._repo = repo
        self._org_login = repo.owner.login

    def list_items(self, filter: ItemFilter) -> list[PullRequestSnapshot]:
        snapshots = []
        for pr in self._repo.get_pulls(state=filter.state, sort="created", direction="desc"):
            snapshot = snapshot_from_pull(pr, self._org_login)
            if filter.reviewer and not _has_reviewer(snapshot, filter.reviewer):
                continue
            snapshots.append(snapshot)
            if filter.limit is not None and len(snapshots) >= filter.limit:
                break
        logger.debug("Listed %d %s pull request(s) in %s", len(snapshots), filter.state, self._repo.full_name)
        return snapshots

    def get_item(self, item_id: int) -> PullRequestSnapshot:
        return snapshot_from_pull(get_pull(self._repo, item_id), self._org_login)

    def get_activity(self, item_id: int) -> ActivityDescriptor | None:
        return latest_activity(get_pull(self._repo, item_id))

    def list_recent_closed_items(self, limit: int) -> list[PullRequestSnapshot]:
        snapshots = []
        for pr in self._repo.get_pulls(state="closed", sort="updated", direction="desc"):
            if len(snapshots) >= limit:
                break
            snapshots.append(snapshot_from_pull(pr, self._org_login))
        return snapshots
