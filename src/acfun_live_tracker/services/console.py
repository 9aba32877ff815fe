"""Interactive console commands."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from acfun_live_tracker.console_commands import ConsoleCommand, help_text
from acfun_live_tracker.domain.errors import DisambiguationError, LiveTrackerError
from acfun_live_tracker.domain.models import LiveSession
from acfun_live_tracker.services.lookups import LookupService
from acfun_live_tracker.services.sessions import SessionService
from acfun_live_tracker.services.snapshots import SnapshotFetcher

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsoleResult:
    """Output of one console command."""

    lines: list[str] = field(default_factory=list)
    quit: bool = False


@dataclass
class ConsoleCommandHandler:
    """Turns console input lines into queries against the tracker."""

    session_service: SessionService
    lookup_service: LookupService
    fetcher: SnapshotFetcher
    watched_owner_ids: set[int] | None = None

    async def handle(self, line: str) -> ConsoleResult:
        """Run one command line; errors come back as output, never raised."""
        try:
            return await self._dispatch(line.split())
        except Exception as exc:
            _logger.exception("Console command %r failed", line.strip())
            return ConsoleResult([f"Command failed: {exc}"])

    async def _dispatch(self, parts: list[str]) -> ConsoleResult:  # noqa: PLR0911
        if not parts:
            return ConsoleResult([help_text()])
        command = ConsoleCommand.lookup(parts[0])
        args = parts[1:]
        if command is ConsoleCommand.QUIT:
            return ConsoleResult(["Stopping, please wait"], quit=True)
        if command is ConsoleCommand.LIST:
            return self._list(args)
        if command is ConsoleCommand.LIST_WATCHED:
            return self._list_watched()
        if command is ConsoleCommand.GET_PLAYBACK:
            return await self._get_playback(args)
        if command is ConsoleCommand.FETCH:
            return await self._fetch(args)
        return ConsoleResult([help_text()])

    def _list(self, args: list[str]) -> ConsoleResult:
        if not args or not _is_int(args[0]) or (len(args) > 1 and not _is_int(args[1])):
            return ConsoleResult([f"Usage: {ConsoleCommand.LIST.value.usage}"])
        owner_id = int(args[0])
        limit = int(args[1]) if len(args) > 1 else -1
        return ConsoleResult(self._owner_lines(owner_id, limit))

    def _list_watched(self) -> ConsoleResult:
        if not self.watched_owner_ids:
            return ConsoleResult(["No owners are configured in WATCHED_OWNER_IDS"])
        lines: list[str] = []
        for owner_id in sorted(self.watched_owner_ids):
            lines.extend(self._owner_lines(owner_id, -1))
        return ConsoleResult(lines)

    def _owner_lines(self, owner_id: int, limit: int) -> list[str]:
        sessions = self.session_service.list_by_owner(owner_id, limit)
        if not sessions:
            return [f"No records for owner {owner_id}"]
        return [format_session(session) for session in sessions]

    async def _get_playback(self, live_ids: list[str]) -> ConsoleResult:
        if not live_ids:
            return ConsoleResult([f"Usage: {ConsoleCommand.GET_PLAYBACK.value.usage}"])
        lines: list[str] = []
        for live_id in live_ids:
            try:
                playback = await self.lookup_service.resolve_playback(live_id)
            except DisambiguationError as exc:
                lines.append(f"Cannot classify recording links of {live_id}: {exc}")
                continue
            except LiveTrackerError as exc:
                lines.append(f"Playback lookup for {live_id} failed: {exc}")
                continue
            lines.append(
                f"Live {live_id}: playback {playback.url} backup {playback.backup_url}"
            )
        return ConsoleResult(lines)

    async def _fetch(self, args: list[str]) -> ConsoleResult:
        if args and not _is_int(args[0]):
            return ConsoleResult([f"Usage: {ConsoleCommand.FETCH.value.usage}"])
        owner_id = int(args[0]) if args else None
        try:
            snapshot = await self.fetcher.fetch_snapshot()
        except LiveTrackerError as exc:
            _logger.warning("Diagnostic live list fetch failed: %s", exc)
            return ConsoleResult([f"Fetching the live list failed: {exc}"])
        sessions = sorted(snapshot.values(), key=lambda s: s.started_at_ms)
        if owner_id is not None:
            sessions = [s for s in sessions if s.owner_id == owner_id]
        lines = [format_session(session) for session in sessions]
        lines.append(f"{len(sessions)} of {len(snapshot)} active lives")
        return ConsoleResult(lines)


def format_start_time(started_at_ms: int) -> str:
    """Format epoch milliseconds as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(started_at_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as ``HH:MM:SS``."""
    total_seconds = duration_ms // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_session(session: LiveSession) -> str:
    """Render one live as a console line."""
    return (
        f"start: {format_start_time(session.started_at_ms)} "
        f"uid: {session.owner_id} name: {session.owner_name} "
        f"title: {session.title} liveID: {session.live_id} "
        f"streamName: {session.stream_name} "
        f"duration: {format_duration(session.duration_ms)} "
        f"cut: {session.cut_number}"
    )


def _is_int(value: str) -> bool:
    return value.lstrip("-").isdigit()
