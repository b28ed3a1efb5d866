"""Heuristic reviewer discovery from closed pull request history.

Used as the last resolution tier when neither the directory nor a static list
yields members, and by the ``collect`` command to bootstrap a static list.

The lexical filters are inherently environment-specific, so the strategy is
pluggable: the resolver only sees ReviewerHeuristic.select().
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from prquorum_core.models import Identity, IdentityKind, PullRequestSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MIN_OCCURRENCES = 3

# Automated accounts and tools that show up as required reviewers.
DEFAULT_DENY_PATTERNS = (
    r"bot\b",
    r"\[bot\]",
    r"service",
    r"automation",
    r"system",
    r"noreply",
    r"donotreply",
    r"enforcer",
)

# Names that look like teams rather than people.
_GROUP_NAME_RE = re.compile(r"^\[|\bteam\b|\bgroup\b|\breviewers\b", re.IGNORECASE)


@dataclass
class ReviewerTally:
    key: str
    display_name: str
    count: int


class ReviewerHeuristic(ABC):
    @abstractmethod
    def select(self, items: Iterable[PullRequestSnapshot]) -> set[str]:
        """Return the identifiers judged to be designated reviewers."""


class FrequencyHeuristic(ReviewerHeuristic):
    """Keep people who were required, or approved, on enough recent items.

    A reviewer is counted at most once per item. Candidates must match at
    least one allow keyword (when any are configured) and no deny pattern.
    """

    def __init__(
        self,
        min_occurrences: int = DEFAULT_MIN_OCCURRENCES,
        allow_keywords: Iterable[str] = (),
        deny_patterns: Iterable[str] = DEFAULT_DENY_PATTERNS,
    ):
        self.min_occurrences = min_occurrences
        self.allow_keywords = [k.lower() for k in allow_keywords]
        self._deny = [re.compile(p, re.IGNORECASE) for p in deny_patterns]

    def accepts(self, identity: Identity) -> bool:
        if identity.kind is not IdentityKind.INDIVIDUAL:
            return False
        names = [n for n in (identity.display_name, identity.unique_name) if n]
        if any(_GROUP_NAME_RE.search(n) for n in names):
            return False
        if any(p.search(n) for p in self._deny for n in names):
            return False
        if self.allow_keywords:
            haystack = " ".join(names).lower()
            return any(k in haystack for k in self.allow_keywords)
        return True

    def tally(self, items: Iterable[PullRequestSnapshot]) -> list[ReviewerTally]:
        """Count qualifying reviewers across items, most frequent first."""
        counts: Counter[str] = Counter()
        names: dict[str, str] = {}
        scanned = 0
        for item in items:
            scanned += 1
            seen: set[str] = set()
            for reviewer in item.reviewers:
                if not (reviewer.is_required or reviewer.vote >= 5):
                    continue
                identity = reviewer.identity
                if not self.accepts(identity):
                    continue
                key = (identity.unique_name or identity.id).lower()
                if key in seen:
                    continue
                seen.add(key)
                counts[key] += 1
                names.setdefault(key, identity.display_name)

        logger.debug("Heuristic scanned %d item(s), %d candidate reviewer(s)", scanned, len(counts))
        return [ReviewerTally(key=k, display_name=names[k], count=c) for k, c in counts.most_common()]

    def select(self, items: Iterable[PullRequestSnapshot]) -> set[str]:
        return {t.key for t in self.tally(items) if t.count >= self.min_occurrences}
