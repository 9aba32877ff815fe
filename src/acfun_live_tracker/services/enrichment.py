"""Background enrichment of started and ended lives."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field

from acfun_live_tracker.domain.errors import DisambiguationError, LiveTrackerError
from acfun_live_tracker.domain.models import LiveSession
from acfun_live_tracker.domain.reconcile import Reconciliation
from acfun_live_tracker.services.lookups import LookupService
from acfun_live_tracker.services.sessions import SessionService

_logger = logging.getLogger(__name__)


@dataclass
class EnrichmentDispatcher:
    """Spawns one independent task per live transition.

    Started lives are stored immediately and get a cut-number lookup. Ended
    lives wait ``end_grace_seconds`` so the upstream can finish its own
    bookkeeping, then get their duration and recording links. A failing task
    is logged and dropped without touching the other tasks.
    """

    session_service: SessionService
    lookup_service: LookupService
    end_grace_seconds: float = 10
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    @property
    def pending(self) -> int:
        """Number of enrichment tasks still running."""
        return len(self._tasks)

    def dispatch(self, reconciliation: Reconciliation) -> None:
        """Handle every transition of one reconciliation without blocking."""
        for session in reconciliation.started:
            self.on_started(session)
        for session in reconciliation.ended:
            self.on_ended(session)

    def on_started(self, session: LiveSession) -> None:
        """Store a new live and schedule its cut-number lookup.

        A storage failure is logged and skips only this live.
        """
        _logger.info(
            "Live started: %s (%s) %s [%s]",
            session.owner_name,
            session.owner_id,
            session.title,
            session.live_id,
        )
        try:
            self.session_service.upsert(session)
        except Exception:
            _logger.exception("Failed to store started live %s", session.live_id)
            return
        self._spawn(self._enrich_cut_number(session), name=f"cut:{session.live_id}")

    def on_ended(self, session: LiveSession) -> None:
        """Schedule the summary and playback lookups for a finished live."""
        _logger.info(
            "Live ended: %s (%s) [%s]",
            session.owner_name,
            session.owner_id,
            session.live_id,
        )
        self._spawn(self._enrich_summary(session), name=f"summary:{session.live_id}")

    async def wait_idle(self) -> None:
        """Wait until every task spawned so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[object, object, None], *, name: str) -> None:
        task = asyncio.get_running_loop().create_task(self._isolated(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _isolated(self, coro: Coroutine[object, object, None]) -> None:
        try:
            await coro
        except Exception:
            _logger.exception("Enrichment task failed")

    async def _enrich_cut_number(self, session: LiveSession) -> None:
        try:
            cut_number = await self.lookup_service.fetch_cut_number(
                session.owner_id, session.live_id
            )
        except LiveTrackerError as exc:
            _logger.warning(
                "Giving up on cut number for live %s of %s: %s",
                session.live_id,
                session.owner_id,
                exc,
            )
            return
        if cut_number:
            self.session_service.update_cut_number(session.live_id, cut_number)
            _logger.info("Live %s has cut number %s", session.live_id, cut_number)

    async def _enrich_summary(self, session: LiveSession) -> None:
        await self.sleep(self.end_grace_seconds)
        try:
            summary = await self.lookup_service.fetch_summary(session.live_id)
        except LiveTrackerError as exc:
            _logger.warning(
                "Giving up on summary for live %s of %s (%s): %s",
                session.live_id,
                session.owner_name,
                session.owner_id,
                exc,
            )
            return
        if summary.duration_ms == 0:
            _logger.warning(
                "Summary of live %s of %s (%s) has zero duration, giving up",
                session.live_id,
                session.owner_name,
                session.owner_id,
            )
            return

        self.session_service.upsert(session)
        self.session_service.update_duration(session.live_id, summary.duration_ms)
        _logger.info(
            "Live %s finished after %s ms", session.live_id, summary.duration_ms
        )
        await self._enrich_playback(session)

    async def _enrich_playback(self, session: LiveSession) -> None:
        try:
            playback = await self.lookup_service.resolve_playback(session.live_id)
        except DisambiguationError as exc:
            _logger.warning(
                "Cannot tell recording CDNs apart for live %s: %s",
                session.live_id,
                exc,
            )
            return
        except LiveTrackerError as exc:
            _logger.warning(
                "Giving up on playback for live %s: %s", session.live_id, exc
            )
            return
        self.session_service.update_playback(
            session.live_id, playback.url, playback.backup_url
        )
