"""Stateful reconciliation across consecutive snapshots."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from acfun_live_tracker.domain.models import LiveSession
from acfun_live_tracker.domain.reconcile import Reconciliation, diff_snapshots


@dataclass
class SnapshotStore:
    """Holds the most recent snapshot."""

    _current: dict[str, LiveSession] = field(default_factory=dict)

    @property
    def current(self) -> Mapping[str, LiveSession]:
        return self._current

    def replace(self, snapshot: Mapping[str, LiveSession]) -> dict[str, LiveSession]:
        """Store ``snapshot`` and return the one it replaces."""
        previous = self._current
        self._current = dict(snapshot)
        return previous


@dataclass
class Reconciler:
    """Diffs each new snapshot against the previous one.

    The full snapshot is always kept, including lives of owners outside the
    watch list, so later diffs stay accurate.
    """

    watched_owner_ids: set[int] | None = None
    store: SnapshotStore = field(default_factory=SnapshotStore)

    def advance(self, snapshot: Mapping[str, LiveSession]) -> Reconciliation:
        """Reconcile ``snapshot`` against the stored one and keep it."""
        previous = self.store.replace(snapshot)
        return diff_snapshots(previous, snapshot, self.watched_owner_ids)

    def is_watched(self, owner_id: int) -> bool:
        return self.watched_owner_ids is None or owner_id in self.watched_owner_ids
