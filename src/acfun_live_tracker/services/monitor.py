"""Polling loop that drives snapshot reconciliation."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from acfun_live_tracker.domain.errors import LiveTrackerError
from acfun_live_tracker.domain.reconcile import Reconciliation
from acfun_live_tracker.services.enrichment import EnrichmentDispatcher
from acfun_live_tracker.services.reconciler import Reconciler
from acfun_live_tracker.services.retry import RetryPolicy
from acfun_live_tracker.services.snapshots import SnapshotFetcher

_logger = logging.getLogger(__name__)


@dataclass
class LiveMonitor:
    """Fetches, reconciles and dispatches on a fixed interval.

    A snapshot fetch that exhausts its retries ends ``run`` with the error;
    there is no baseline to diff against without it. Enrichment tasks are
    never awaited by the loop.
    """

    fetcher: SnapshotFetcher
    reconciler: Reconciler
    dispatcher: EnrichmentDispatcher
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    poll_interval_seconds: float = 20

    async def poll_once(self) -> Reconciliation:
        """Run one fetch, reconcile and dispatch iteration."""
        snapshot = await self.retry.run(
            self.fetcher.fetch_snapshot, action="live list fetch"
        )
        reconciliation = self.reconciler.advance(snapshot)
        self.dispatcher.dispatch(reconciliation)
        return reconciliation

    async def run(self, stop: asyncio.Event) -> None:
        """Poll until ``stop`` is set."""
        _logger.info(
            "Monitoring lives every %ss (owners: %s)",
            self.poll_interval_seconds,
            sorted(self.reconciler.watched_owner_ids)
            if self.reconciler.watched_owner_ids
            else "all",
        )
        while not stop.is_set():
            try:
                await self.poll_once()
            except LiveTrackerError:
                _logger.error("Too many errors fetching the live list, stopping")
                raise
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval_seconds)
        _logger.info(
            "Monitor stopped with %s enrichment tasks pending",
            self.dispatcher.pending,
        )
