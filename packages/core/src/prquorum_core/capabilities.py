"""Abstract query capabilities consumed by the resolver and batch analysis.

Concrete backends (GitHub today, see prquorum_core.gh) implement these
interfaces. The resolver and analysis code depend only on the ABCs, so tests
can inject in-memory fakes and backends are swappable.

Implementations may raise on transport or permission failures; callers in
this package catch those and degrade instead of propagating.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prquorum_core.models import ActivityDescriptor, Identity, IdentityKind, MemberRef, PullRequestSnapshot


@dataclass(frozen=True)
class ItemFilter:
    """Selection criteria for SourceControl.list_items()."""

    state: str = "open"
    # Keep only items where this login/id is among the reviewers.
    reviewer: str | None = None
    limit: int | None = None


class Directory(ABC):
    """Organisational identity directory (users, groups, service accounts)."""

    @abstractmethod
    def search_by_exact_name(self, name: str) -> Identity | None:
        """Return the identity whose display name equals ``name`` ignoring case, or None."""

    @abstractmethod
    def get_members(self, group_id: str) -> list[MemberRef]:
        """Return the direct members of a group."""

    @abstractmethod
    def resolve_kind(self, identifier: str) -> IdentityKind:
        """Classify a member identifier as individual, group or service account."""


class SourceControl(ABC):
    @abstractmethod
    def list_items(self, filter: ItemFilter) -> list[PullRequestSnapshot]:
        """Return snapshots of the pull requests matching ``filter``."""

    @abstractmethod
    def get_activity(self, item_id: int) -> ActivityDescriptor | None:
        """Return the most recent actor + action on an item, or None when there is none."""


class History(ABC):
    """Closed-item history, used only by the heuristic resolution tier."""

    @abstractmethod
    def list_recent_closed_items(self, limit: int) -> list[PullRequestSnapshot]:
        """Return up to ``limit`` recently closed items, newest first."""
