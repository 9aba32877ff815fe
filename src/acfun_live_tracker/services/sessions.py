"""Serialized access to stored live sessions."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

from acfun_live_tracker.domain.models import LiveSession

_logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for live sessions."""

    def insert_if_absent(self, session: LiveSession) -> bool:
        """Insert a session unless its id is already stored."""

    def set_duration_if_unset(self, live_id: str, duration_ms: int) -> bool:
        """Set the duration of a stored session whose duration is zero."""

    def set_cut_number_if_unset(self, live_id: str, cut_number: int) -> bool:
        """Set the cut number of a stored session whose cut number is zero."""

    def set_playback_if_unset(self, live_id: str, url: str, backup_url: str) -> bool:
        """Set playback urls of a stored session that has none."""

    def get(self, live_id: str) -> LiveSession | None:
        """Return a stored session, if present."""

    def list_by_owner(self, owner_id: int, limit: int) -> list[LiveSession]:
        """Return an owner's sessions ordered by start time, newest first."""


@dataclass
class SessionService:
    """Coordinates every read and write against the session store.

    The monitor loop, enrichment tasks, console commands and the HTTP API
    share one repository, so each call holds the same lock. Field updates
    only move a field away from its zero value.
    """

    repository: SessionRepository
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def upsert(self, session: LiveSession) -> bool:
        """Store a session; returns False if it was already stored."""
        with self._lock:
            inserted = self.repository.insert_if_absent(session)
        if inserted:
            _logger.info(
                "Stored live %s of %s (%s): %s",
                session.live_id,
                session.owner_name,
                session.owner_id,
                session.title,
            )
        return inserted

    def update_duration(self, live_id: str, duration_ms: int) -> bool:
        """Record the final duration; ignored if zero or already set."""
        if duration_ms <= 0:
            return False
        with self._lock:
            updated = self.repository.set_duration_if_unset(live_id, duration_ms)
        if not updated:
            _logger.info("Duration of live %s already set, ignoring", live_id)
        return updated

    def update_cut_number(self, live_id: str, cut_number: int) -> bool:
        """Record the cut number; ignored if zero or already set."""
        if cut_number <= 0:
            return False
        with self._lock:
            updated = self.repository.set_cut_number_if_unset(live_id, cut_number)
        if not updated:
            _logger.info("Cut number of live %s already set, ignoring", live_id)
        return updated

    def update_playback(self, live_id: str, url: str, backup_url: str) -> bool:
        """Record both recording urls; ignored if either is empty or already set."""
        if not url or not backup_url:
            return False
        with self._lock:
            return self.repository.set_playback_if_unset(live_id, url, backup_url)

    def get(self, live_id: str) -> LiveSession | None:
        with self._lock:
            return self.repository.get(live_id)

    def exists(self, live_id: str) -> bool:
        return self.get(live_id) is not None

    def list_by_owner(self, owner_id: int, limit: int = -1) -> list[LiveSession]:
        """List an owner's sessions newest first; ``limit=-1`` returns all."""
        with self._lock:
            return self.repository.list_by_owner(owner_id, limit)
