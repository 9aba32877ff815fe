"""Follow-up lookups for individual lives."""

import json
import logging
from dataclasses import dataclass, field

from acfun_live_tracker.adapters.acfun_client import AcfunClient
from acfun_live_tracker.domain.errors import ParseError, UpstreamLogicError
from acfun_live_tracker.domain.models import LiveCutInfo, LiveSummary, Playback
from acfun_live_tracker.domain.playback import classify_playback, cut_number_from_info
from acfun_live_tracker.services.retry import RetryPolicy

_logger = logging.getLogger(__name__)

# endSummary and startPlay report success as 1, the acfun.cn endpoints as 0.
_KUAISHOU_OK = 1
_ACFUN_OK = 0


@dataclass
class LookupService:
    """Cut-number, summary and playback lookups, each behind the retry policy."""

    client: AcfunClient
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    async def fetch_cut_number(self, owner_id: int, live_id: str) -> int:
        """Return the live's cut number, or 0 if no cut is ready."""

        async def attempt() -> int:
            payload = await self.client.get_live_cut_info(owner_id, live_id)
            return cut_number_from_info(_parse_cut_info(payload))

        return await self.retry.run(attempt, action=f"cut info for live {live_id}")

    async def fetch_summary(self, live_id: str) -> LiveSummary:
        """Return the end-of-live summary."""

        async def attempt() -> LiveSummary:
            payload = await self.client.get_summary(live_id)
            return _parse_summary(payload)

        return await self.retry.run(attempt, action=f"summary for live {live_id}")

    async def fetch_playback(self, live_id: str) -> Playback:
        """Return the playback links as reported upstream."""

        async def attempt() -> Playback:
            payload = await self.client.get_playback(live_id)
            return _parse_playback(payload)

        return await self.retry.run(attempt, action=f"playback for live {live_id}")

    async def resolve_playback(self, live_id: str) -> Playback:
        """Return playback links ordered as (primary CDN, secondary CDN).

        Raises DisambiguationError when the links cannot be classified.
        """
        playback = await self.fetch_playback(live_id)
        url, backup_url = classify_playback(playback)
        return Playback(
            url=url, backup_url=backup_url, duration_ms=playback.duration_ms
        )


def _require_result(payload: dict[str, object], expected: int, what: str) -> None:
    if "result" not in payload or payload.get("result") != expected:
        raise UpstreamLogicError(f"{what} returned result={payload.get('result')!r}")


def _parse_cut_info(payload: dict[str, object]) -> LiveCutInfo:
    _require_result(payload, _ACFUN_OK, "Cut info")
    try:
        status = int(payload.get("liveCutStatus", 0))
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Invalid liveCutStatus: {exc}") from exc
    return LiveCutInfo(status=status, url=str(payload.get("liveCutUrl") or ""))


def _parse_summary(payload: dict[str, object]) -> LiveSummary:
    _require_result(payload, _KUAISHOU_OK, "Summary")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ParseError("Summary response has no data object")
    try:
        duration_ms = int(data.get("liveDurationMs", 0))
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Invalid liveDurationMs: {exc}") from exc
    return LiveSummary(
        duration_ms=duration_ms,
        like_count=str(data.get("likeCount", "")),
        watch_count=str(data.get("watchCount", "")),
    )


def _parse_playback(payload: dict[str, object]) -> Playback:
    _require_result(payload, _KUAISHOU_OK, "Playback")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ParseError("Playback response has no data object")
    manifest = data.get("adaptiveManifest")
    try:
        if isinstance(manifest, str):
            manifest = json.loads(manifest)
        adaptation = manifest["adaptationSet"]
        if isinstance(adaptation, list):
            adaptation = adaptation[0]
        representation = adaptation["representation"][0]
        duration_ms = int(data.get("duration") or adaptation.get("duration") or 0)
        url = representation.get("url") or ""
        backups = representation.get("backupUrl") or []
    except (
        json.JSONDecodeError,
        AttributeError,
        KeyError,
        IndexError,
        TypeError,
        ValueError,
    ) as exc:
        raise ParseError(f"Malformed playback manifest: {exc}") from exc
    if isinstance(backups, str):
        backups = [backups]
    return Playback(
        url=str(url),
        backup_url=str(backups[0]) if backups else "",
        duration_ms=duration_ms,
    )
