"""Reviewer, pull request and outcome data models.

Everything here is read-only once built: snapshots come from a SourceControl
capability, identities from a Directory, and outcomes are created fresh by
the classifier on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class IdentityKind(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"
    SERVICE_ACCOUNT = "service_account"


class ResolutionTier(str, Enum):
    """Which resolution strategy produced a review group's members."""

    LIVE = "live"
    STATIC_FALLBACK = "static_fallback"
    HEURISTIC = "heuristic"
    UNRESOLVED = "unresolved"


class VoteStatus(str, Enum):
    APPROVED = "approved"
    APPROVED_WITH_SUGGESTIONS = "approved_with_suggestions"
    NO_VOTE = "no_vote"
    WAITING_FOR_AUTHOR = "waiting_for_author"
    REJECTED = "rejected"
    UNKNOWN = "unknown"
    NOT_A_REVIEWER = "not_a_reviewer"


class PendingReason(str, Enum):
    """Why an open pull request is not yet mergeable, in priority order."""

    REJECTED = "rejected"
    WAITING_FOR_AUTHOR = "waiting_for_author"
    PENDING_REQUIRED_REVIEWER_APPROVAL = "pending_required_reviewer_approval"
    PENDING_OTHER_APPROVAL = "pending_other_approval"
    POLICY_OR_BUILD_BLOCKED = "policy_or_build_blocked"


@dataclass(frozen=True)
class Identity:
    id: str
    display_name: str
    kind: IdentityKind = IdentityKind.INDIVIDUAL
    # Login or e-mail; matched against group members as an alternate identifier.
    unique_name: str | None = None


@dataclass(frozen=True)
class MemberRef:
    """One edge of a group's membership: the member identifier plus an optional kind hint."""

    identifier: str
    kind_hint: IdentityKind | None = None


@dataclass(frozen=True)
class ReviewerVote:
    identity: Identity
    vote: int = 0
    is_required: bool = False


@dataclass(frozen=True)
class ActivityDescriptor:
    """The single most recent change on a pull request."""

    actor_id: str
    action: str
    at: datetime | None = None


@dataclass(frozen=True)
class PullRequestSnapshot:
    id: int
    author_id: str
    created_at: datetime
    reviewers: tuple[ReviewerVote, ...] = ()
    recent_activity: ActivityDescriptor | None = None
    title: str = ""
    author_name: str = ""
    is_open: bool = True


@dataclass(frozen=True)
class ResolvedReviewGroup:
    """Flattened individual members of the designated review group.

    ``tier == UNRESOLVED`` means membership is unknown, which is not the
    same thing as a group that resolved to zero members.
    """

    members: frozenset[str] = field(default_factory=frozenset)
    tier: ResolutionTier = ResolutionTier.UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.tier is not ResolutionTier.UNRESOLVED

    def contains(self, identity: Identity) -> bool:
        # Members are stored lower-cased by the resolver.
        if identity.id.lower() in self.members:
            return True
        return bool(identity.unique_name) and identity.unique_name.lower() in self.members

    def diagnostics(self) -> dict:
        return {"member_count": len(self.members), "tier": self.tier.value}


@dataclass(frozen=True)
class ApprovalRatio:
    approved: int
    total: int

    def __str__(self) -> str:
        return f"{self.approved}/{self.total}"


@dataclass(frozen=True)
class ReviewOutcome:
    vote_status: VoteStatus
    # None means Unknown: the review group could not be resolved.
    approval_ratio: ApprovalRatio | None
    pending_reason: PendingReason
    last_change: str = ""


@dataclass(frozen=True)
class ItemResult:
    """A successfully classified pull request, as handed to rendering."""

    id: int
    outcome: ReviewOutcome
    snapshot: PullRequestSnapshot

    def to_dict(self) -> dict:
        ratio = self.outcome.approval_ratio
        return {
            "id": self.id,
            "title": self.snapshot.title,
            "author": self.snapshot.author_name,
            "vote_status": self.outcome.vote_status.value,
            "approval_ratio": str(ratio) if ratio is not None else None,
            "pending_reason": self.outcome.pending_reason.value,
            "last_change": self.outcome.last_change,
        }


@dataclass(frozen=True)
class ItemError:
    """Error marker for an item whose analysis failed or was cancelled.

    Partial results are never attached; the marker stands in for the item.
    """

    id: int
    reason: str
    message: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "error": self.reason, "message": self.message}
