"""Snapshot diffing."""

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field

from acfun_live_tracker.domain.models import LiveSession

Snapshot = Mapping[str, LiveSession]


@dataclass(frozen=True)
class Reconciliation:
    """Sessions that started and ended between two snapshots."""

    started: list[LiveSession] = field(default_factory=list)
    ended: list[LiveSession] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.started and not self.ended


def diff_snapshots(
    previous: Snapshot,
    current: Snapshot,
    watched_owner_ids: Collection[int] | None = None,
) -> Reconciliation:
    """Compare two snapshots by live id.

    Only membership matters; a title change on a live present in both
    snapshots is not reported. When ``watched_owner_ids`` is given, sessions
    of other owners are dropped from both result lists.
    """
    started = [
        session for live_id, session in current.items() if live_id not in previous
    ]
    ended = [
        session for live_id, session in previous.items() if live_id not in current
    ]
    if watched_owner_ids is not None:
        started = [s for s in started if s.owner_id in watched_owner_ids]
        ended = [s for s in ended if s.owner_id in watched_owner_ids]
    return Reconciliation(
        started=sorted(started, key=_order_key),
        ended=sorted(ended, key=_order_key),
    )


def _order_key(session: LiveSession) -> tuple[int, str]:
    return session.started_at_ms, session.live_id
