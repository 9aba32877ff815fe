"""Parsing helpers for cut info and recording URLs."""

import re

from acfun_live_tracker.domain.errors import DisambiguationError, ExtractionError
from acfun_live_tracker.domain.models import LiveCutInfo, Playback

_CUT_NUMBER_PATTERN = re.compile(r"/[0-9]+")

PRIMARY_CDN_MARKER = "alivod"
SECONDARY_CDN_MARKER = "txvod"


def extract_cut_number(url: str) -> int:
    """Return the single numeric path segment embedded in a cut URL."""
    matches = _CUT_NUMBER_PATTERN.findall(url)
    if len(matches) != 1:
        raise ExtractionError(
            f"Expected one numeric segment in cut url, found {len(matches)}: {url!r}"
        )
    return int(matches[0][1:])


def cut_number_from_info(info: LiveCutInfo) -> int:
    """Interpret a cut-info response; lives without a ready cut yield 0."""
    if not info.is_ready:
        return 0
    return extract_cut_number(info.url)


def classify_playback(playback: Playback) -> tuple[str, str]:
    """Split playback URLs into (primary, secondary) CDN links.

    Raises DisambiguationError unless exactly one URL of each provider is
    present.
    """
    primary: list[str] = []
    secondary: list[str] = []
    for url in (playback.url, playback.backup_url):
        if not url:
            continue
        if PRIMARY_CDN_MARKER in url:
            primary.append(url)
        elif SECONDARY_CDN_MARKER in url:
            secondary.append(url)
    if len(primary) != 1 or len(secondary) != 1:
        raise DisambiguationError(
            f"Could not classify playback urls (primary={len(primary)}, "
            f"secondary={len(secondary)})"
        )
    return primary[0], secondary[0]
