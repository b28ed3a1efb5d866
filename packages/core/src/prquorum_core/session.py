"""Per-batch session context.

Holds the review group resolution for one run. The group is resolved lazily
and exactly once, under a lock, so every classification in the batch sees
the same membership and concurrent callers never trigger duplicate lookups.
Each run builds its own SessionContext; nothing is cached module-wide.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from prquorum_core.classifier import DEFAULT_APPROVAL_THRESHOLD, classify

if TYPE_CHECKING:
    from prquorum_core.models import Identity, PullRequestSnapshot, ResolvedReviewGroup, ReviewOutcome
    from prquorum_core.resolver import GroupResolver

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(
        self,
        resolver: GroupResolver,
        group_name: str | None,
        viewer: Identity | None = None,
        threshold: int = DEFAULT_APPROVAL_THRESHOLD,
    ):
        self._resolver = resolver
        self.group_name = group_name
        self.viewer = viewer
        self.threshold = threshold
        self._resolved: ResolvedReviewGroup | None = None
        self._lock = threading.Lock()

    @property
    def resolved_group(self) -> ResolvedReviewGroup:
        """The review group, resolved on first access and fixed afterwards."""
        if self._resolved is None:
            with self._lock:
                if self._resolved is None:
                    logger.info("Resolving review group %r", self.group_name)
                    self._resolved = self._resolver.resolve(self.group_name)
        return self._resolved

    def classify(self, snapshot: PullRequestSnapshot) -> ReviewOutcome:
        return classify(snapshot, self.resolved_group, self.viewer, self.threshold)
