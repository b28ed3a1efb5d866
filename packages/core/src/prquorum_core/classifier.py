"""Review-state classification.

Pure functions of a PullRequestSnapshot, the session's ResolvedReviewGroup
and the viewing user: no I/O, no hidden state, nothing raises for
well-formed snapshots.
"""

from __future__ import annotations

import re
from datetime import datetime

from prquorum_core.models import (
    ApprovalRatio,
    Identity,
    IdentityKind,
    PendingReason,
    PullRequestSnapshot,
    ResolvedReviewGroup,
    ReviewerVote,
    ReviewOutcome,
    VoteStatus,
)

APPROVED = 10
APPROVED_WITH_SUGGESTIONS = 5
NO_VOTE = 0
WAITING_FOR_AUTHOR = -5
REJECTED = -10

# Policy: designated-group approvals needed before other reviewers matter.
DEFAULT_APPROVAL_THRESHOLD = 2

_VOTE_STATUS = {
    APPROVED: VoteStatus.APPROVED,
    APPROVED_WITH_SUGGESTIONS: VoteStatus.APPROVED_WITH_SUGGESTIONS,
    NO_VOTE: VoteStatus.NO_VOTE,
    WAITING_FOR_AUTHOR: VoteStatus.WAITING_FOR_AUTHOR,
    REJECTED: VoteStatus.REJECTED,
}

_VOTE_DESCRIPTION = {
    APPROVED: "Approved",
    APPROVED_WITH_SUGGESTIONS: "Approved with Suggestions",
    WAITING_FOR_AUTHOR: "Waiting for Author",
    REJECTED: "Rejected",
}

# Reviewer entries that are tools or teams rather than people.
_SYSTEM_NAME_RE = re.compile(
    r"^\[|\bbot\b|\[bot\]|automation|^ownership enforcer$|^github-actions",
    re.IGNORECASE,
)


def vote_status(vote: int) -> VoteStatus:
    return _VOTE_STATUS.get(vote, VoteStatus.UNKNOWN)


def describe_vote(vote: int) -> str:
    return _VOTE_DESCRIPTION.get(vote, "Voted")


def is_approval(vote: int) -> bool:
    return vote >= APPROVED_WITH_SUGGESTIONS


def is_system_reviewer(identity: Identity) -> bool:
    if identity.kind is not IdentityKind.INDIVIDUAL:
        return True
    return bool(_SYSTEM_NAME_RE.search(identity.display_name or ""))


def find_reviewer(snapshot: PullRequestSnapshot, viewer: Identity | None) -> ReviewerVote | None:
    """Locate the viewer's reviewer entry by id, then by display name ignoring case."""
    if viewer is None:
        return None
    for reviewer in snapshot.reviewers:
        if reviewer.identity.id == viewer.id:
            return reviewer
    name = (viewer.display_name or "").casefold()
    if not name:
        return None
    for reviewer in snapshot.reviewers:
        if (reviewer.identity.display_name or "").casefold() == name:
            return reviewer
    return None


def viewer_vote_status(snapshot: PullRequestSnapshot, viewer: Identity | None) -> VoteStatus:
    reviewer = find_reviewer(snapshot, viewer)
    if reviewer is None or not reviewer.is_required:
        return VoteStatus.NOT_A_REVIEWER
    return vote_status(reviewer.vote)


def matched_group_reviewers(snapshot: PullRequestSnapshot, resolved: ResolvedReviewGroup) -> list[ReviewerVote]:
    """Required reviewers who belong to the designated group."""
    return [r for r in snapshot.reviewers if r.is_required and resolved.contains(r.identity)]


def approval_ratio(snapshot: PullRequestSnapshot, resolved: ResolvedReviewGroup) -> ApprovalRatio | None:
    """Approved vs. assigned designated-group reviewers; None when membership is unknown."""
    if not resolved.is_resolved:
        return None
    matched = matched_group_reviewers(snapshot, resolved)
    return ApprovalRatio(sum(1 for r in matched if is_approval(r.vote)), len(matched))


def pending_reason(
    snapshot: PullRequestSnapshot,
    resolved: ResolvedReviewGroup,
    threshold: int = DEFAULT_APPROVAL_THRESHOLD,
) -> PendingReason:
    reviewers = snapshot.reviewers

    if any(r.vote == REJECTED for r in reviewers):
        return PendingReason.REJECTED
    if any(r.vote == WAITING_FOR_AUTHOR for r in reviewers):
        return PendingReason.WAITING_FOR_AUTHOR

    people = [r for r in reviewers if not is_system_reviewer(r.identity)]
    if resolved.is_resolved:
        group_approvals = sum(1 for r in matched_group_reviewers(snapshot, resolved) if is_approval(r.vote))
        if group_approvals < threshold:
            return PendingReason.PENDING_REQUIRED_REVIEWER_APPROVAL
    else:
        # Membership unknown: fall back to approvals from any person.
        approvals = sum(1 for r in people if is_approval(r.vote))
        if approvals < min(threshold, len(people)):
            return PendingReason.PENDING_REQUIRED_REVIEWER_APPROVAL

    if any(not r.is_required and not is_approval(r.vote) for r in people):
        return PendingReason.PENDING_OTHER_APPROVAL
    return PendingReason.POLICY_OR_BUILD_BLOCKED


def describe_last_change(snapshot: PullRequestSnapshot, viewer: Identity | None = None) -> str:
    """Format the most recent change as ``"<who>: <what>"``."""
    activity = snapshot.recent_activity
    if activity is None or not activity.actor_id:
        return "Author: Created PR"

    actor_id = activity.actor_id
    action = activity.action
    for reviewer in snapshot.reviewers:
        if reviewer.vote != NO_VOTE and reviewer.identity.id == actor_id:
            action = describe_vote(reviewer.vote)
            break

    if viewer is not None and actor_id == viewer.id:
        who = "Me"
    elif actor_id == snapshot.author_id:
        who = "Author"
    elif any(r.identity.id == actor_id for r in snapshot.reviewers):
        who = "Reviewer"
    else:
        who = "Other"
    return f"{who}: {action}"


def format_age(created_at: datetime, now: datetime) -> str:
    """Compact age such as ``3d``, ``5h``, ``12m`` or ``< 1m``."""
    seconds = (now - created_at).total_seconds()
    if seconds >= 86400:
        return f"{int(seconds // 86400)}d"
    if seconds >= 3600:
        return f"{int(seconds // 3600)}h"
    if seconds >= 60:
        return f"{int(seconds // 60)}m"
    return "< 1m"


def classify(
    snapshot: PullRequestSnapshot,
    resolved: ResolvedReviewGroup,
    viewer: Identity | None = None,
    threshold: int = DEFAULT_APPROVAL_THRESHOLD,
) -> ReviewOutcome:
    return ReviewOutcome(
        vote_status=viewer_vote_status(snapshot, viewer),
        approval_ratio=approval_ratio(snapshot, resolved),
        pending_reason=pending_reason(snapshot, resolved, threshold),
        last_change=describe_last_change(snapshot, viewer),
    )
