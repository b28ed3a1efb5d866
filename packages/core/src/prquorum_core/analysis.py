"""Batch analysis of pull requests over a bounded worker pool.

Each item needs one activity lookup (network bound) followed by pure
classification. Items run on a ThreadPoolExecutor capped at ``max_workers``
so a large batch never fans out unbounded against a rate-limited API.

Results preserve input order. An item that fails, or that has not finished
when the deadline passes or the cancel event is set, is reported as an
ItemError marker; its partial work is discarded.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from prquorum_core.models import ItemError, ItemResult

if TYPE_CHECKING:
    from prquorum_core.capabilities import ItemFilter, SourceControl
    from prquorum_core.models import PullRequestSnapshot
    from prquorum_core.session import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
MAX_WORKERS_LIMIT = 16

# How often the wait loop re-checks the cancel event.
_POLL_INTERVAL = 0.1


class _Cancelled(Exception):
    pass


def _analyze_one(
    session: SessionContext,
    source: SourceControl,
    snapshot: PullRequestSnapshot,
    should_stop,
) -> ItemResult:
    if should_stop():
        raise _Cancelled()
    if snapshot.recent_activity is None:
        activity = source.get_activity(snapshot.id)
        snapshot = dataclasses.replace(snapshot, recent_activity=activity)
    if should_stop():
        raise _Cancelled()
    return ItemResult(id=snapshot.id, outcome=session.classify(snapshot), snapshot=snapshot)


def analyze_items(
    session: SessionContext,
    source: SourceControl,
    snapshots: list[PullRequestSnapshot],
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> list[ItemResult | ItemError]:
    """Classify every snapshot, returning one result or error marker per item."""
    if not snapshots:
        return []

    # Resolve before fan-out so every worker reads the same membership.
    session.resolved_group

    workers = max(1, min(max_workers, MAX_WORKERS_LIMIT, len(snapshots)))
    deadline = time.monotonic() + timeout if timeout is not None else None
    stop = threading.Event()

    def should_stop() -> bool:
        return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="prquorum")
    futures: dict[Future, int] = {}
    try:
        for index, snapshot in enumerate(snapshots):
            futures[executor.submit(_analyze_one, session, source, snapshot, should_stop)] = index

        pending = set(futures)
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                break
            wait_for = None
            if deadline is not None:
                wait_for = deadline - time.monotonic()
                if wait_for <= 0:
                    break
            if cancel_event is not None:
                wait_for = _POLL_INTERVAL if wait_for is None else min(wait_for, _POLL_INTERVAL)
            _, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)

        if pending:
            stop.set()
            for future in pending:
                future.cancel()
            logger.warning("Analysis stopped with %d of %d item(s) unfinished", len(pending), len(snapshots))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    results: list[ItemResult | ItemError] = [None] * len(snapshots)  # type: ignore[list-item]
    for future, index in futures.items():
        item_id = snapshots[index].id
        if future in pending or future.cancelled():
            results[index] = ItemError(id=item_id, reason="cancelled", message="analysis did not finish in time")
            continue
        try:
            results[index] = future.result()
        except _Cancelled:
            results[index] = ItemError(id=item_id, reason="cancelled", message="analysis was cancelled")
        except Exception as e:
            logger.warning("Analysis of item #%d failed (%s): %s", item_id, type(e).__name__, e)
            results[index] = ItemError(id=item_id, reason="failed", message=f"{type(e).__name__}: {e}")
    return results


def run_batch(
    session: SessionContext,
    source: SourceControl,
    filter: ItemFilter,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> list[ItemResult | ItemError]:
    """List items from source control and analyze them.

    A failure to list items at all is not per-item and propagates.
    """
    snapshots = source.list_items(filter)
    logger.info("Analyzing %d item(s)", len(snapshots))
    return analyze_items(session, source, snapshots, max_workers, timeout, cancel_event)
