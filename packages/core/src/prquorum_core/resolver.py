"""Tiered resolution of a review group into individual reviewer identities.

Tiers, first non-empty result wins:
  1. LIVE             directory lookup plus nested-group expansion
  2. STATIC_FALLBACK  a pre-supplied list of reviewer identifiers
  3. HEURISTIC        frequency analysis of recently closed items
  4. UNRESOLVED       nothing worked; membership is unknown

resolve() never raises: a failing tier is logged and treated as empty.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from prquorum_core.models import IdentityKind, ResolutionTier, ResolvedReviewGroup

if TYPE_CHECKING:
    from prquorum_core.capabilities import Directory, History
    from prquorum_core.heuristic import ReviewerHeuristic

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 500


def expand_group(directory: Directory, root_id: str) -> set[str]:
    """Flatten a group into its individual members.

    Iterative depth-first walk over an explicit stack. Each group id is
    expanded at most once, so diamonds and cycles in the membership graph
    terminate. Service accounts are dropped. A nested group that cannot be
    read contributes nothing; the root group failing propagates to the caller.
    """
    members: set[str] = set()
    visited: set[str] = set()
    stack = [root_id]

    while stack:
        group_id = stack.pop()
        if group_id in visited:
            continue
        visited.add(group_id)

        try:
            refs = directory.get_members(group_id)
        except Exception as e:
            if group_id == root_id:
                raise
            logger.warning("Could not expand nested group %s: %s", group_id, e)
            continue

        for ref in refs:
            kind = ref.kind_hint
            if kind is None:
                try:
                    kind = directory.resolve_kind(ref.identifier)
                except Exception as e:
                    logger.debug("Treating %s as an individual (%s)", ref.identifier, e)
                    kind = IdentityKind.INDIVIDUAL

            if kind is IdentityKind.GROUP:
                if ref.identifier not in visited:
                    logger.debug("Found nested group %s, expanding", ref.identifier)
                    stack.append(ref.identifier)
            elif kind is IdentityKind.INDIVIDUAL:
                members.add(ref.identifier.lower())
            else:
                logger.debug("Skipping service account %s", ref.identifier)

    return members


class GroupResolver:
    """Resolve the designated review group through the fallback tiers.

    Any tier may be absent: without a directory the live tier is skipped,
    without a static list tier 2 is empty, and without history or a
    heuristic strategy tier 3 is skipped.
    """

    def __init__(
        self,
        directory: Directory | None = None,
        static_members: Iterable[str] = (),
        history: History | None = None,
        heuristic: ReviewerHeuristic | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._directory = directory
        self._static = frozenset(m.strip().lower() for m in static_members if m and m.strip())
        self._history = history
        self._heuristic = heuristic
        self._history_limit = history_limit

    def resolve(self, group_name: str | None) -> ResolvedReviewGroup:
        members = self._resolve_live(group_name)
        if members:
            logger.info("Resolved %d reviewer(s) for %r via group membership", len(members), group_name)
            return ResolvedReviewGroup(frozenset(members), ResolutionTier.LIVE)

        if self._static:
            logger.warning("No live members for %r, using static fallback (%d)", group_name, len(self._static))
            return ResolvedReviewGroup(self._static, ResolutionTier.STATIC_FALLBACK)

        members = self._resolve_heuristic()
        if members:
            logger.warning("Using %d reviewer(s) inferred from recent history", len(members))
            return ResolvedReviewGroup(frozenset(members), ResolutionTier.HEURISTIC)

        logger.warning("Could not resolve review group %r; approval ratios will be unknown", group_name)
        return ResolvedReviewGroup(frozenset(), ResolutionTier.UNRESOLVED)

    def _resolve_live(self, group_name: str | None) -> set[str]:
        if self._directory is None or not group_name:
            return set()
        try:
            group = self._directory.search_by_exact_name(group_name)
            if group is None:
                logger.warning("Group %r not found", group_name)
                return set()
            logger.info("Found group %s (%s)", group.display_name, group.id)
            return expand_group(self._directory, group.id)
        except Exception as e:
            logger.warning("Directory lookup for %r failed (%s): %s", group_name, type(e).__name__, e)
            return set()

    def _resolve_heuristic(self) -> set[str]:
        if self._history is None or self._heuristic is None:
            return set()
        try:
            items = self._history.list_recent_closed_items(self._history_limit)
            return {m.lower() for m in self._heuristic.select(items)}
        except Exception as e:
            logger.warning("Heuristic reviewer discovery failed (%s): %s", type(e).__name__, e)
            return set()
