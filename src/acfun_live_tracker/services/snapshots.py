"""Fetching the set of currently active lives."""

import logging
from dataclasses import dataclass

from acfun_live_tracker.adapters.acfun_client import AcfunClient
from acfun_live_tracker.domain.errors import (
    PaginationError,
    ParseError,
    UpstreamLogicError,
)
from acfun_live_tracker.domain.models import LiveSession

_logger = logging.getLogger(__name__)

_NO_MORE = "no_more"


@dataclass
class SnapshotFetcher:
    """Builds a complete snapshot from the paginated live list endpoint.

    Rather than following cursors, the requested page size grows tenfold
    until the upstream reports there is nothing more to return.
    """

    client: AcfunClient
    initial_page_size: int = 10_000
    max_page_size: int = 100_000_000

    async def fetch_snapshot(self) -> dict[str, LiveSession]:
        """Return every active live keyed by live id."""
        count = self.initial_page_size
        while True:
            payload = await self.client.get_live_list(count)
            data = _channel_list_data(payload)
            if data.get("pcursor") == _NO_MORE:
                break
            if count >= self.max_page_size:
                raise PaginationError(
                    f"Live list did not terminate at page size {count}"
                )
            count *= 10

        live_list = data.get("liveList") or []
        if not isinstance(live_list, list):
            raise ParseError("liveList is not a list")
        snapshot: dict[str, LiveSession] = {}
        for entry in live_list:
            session = _parse_live(entry)
            snapshot[session.live_id] = session
        _logger.debug("Fetched %s active lives (page size %s)", len(snapshot), count)
        return snapshot


def _channel_list_data(payload: dict[str, object]) -> dict[str, object]:
    data = payload.get("channelListData")
    if not isinstance(data, dict):
        raise ParseError("Live list response is missing channelListData")
    if data.get("result") != 0:
        raise UpstreamLogicError(f"Live list returned result={data.get('result')!r}")
    return data


def _parse_live(entry: object) -> LiveSession:
    if not isinstance(entry, dict):
        raise ParseError(f"Unexpected live entry: {entry!r}")
    live_id = entry.get("liveId")
    if not isinstance(live_id, str) or not live_id:
        raise ParseError(f"Live entry without liveId: {entry!r}")
    user = entry.get("user") or {}
    try:
        return LiveSession(
            live_id=live_id,
            owner_id=int(entry.get("authorId", 0)),
            owner_name=str(user.get("name", "")),
            stream_name=str(entry.get("streamName", "")),
            started_at_ms=int(entry.get("createTime", 0)),
            title=str(entry.get("title", "")),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ParseError(f"Malformed live entry {live_id}: {exc}") from exc
