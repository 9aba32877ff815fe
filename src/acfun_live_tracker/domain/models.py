"""Domain models for live sessions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LiveSession:
    """Represents one live broadcast as observed in a snapshot."""

    live_id: str
    owner_id: int
    owner_name: str
    stream_name: str
    started_at_ms: int
    title: str
    duration_ms: int = 0
    playback_url: str = ""
    backup_url: str = ""
    cut_number: int = 0

    @property
    def is_terminal(self) -> bool:
        """Whether the final duration has been recorded."""
        return self.duration_ms > 0


@dataclass(frozen=True)
class LiveSummary:
    """End-of-live report returned by the summary endpoint."""

    duration_ms: int
    like_count: str = ""
    watch_count: str = ""


@dataclass(frozen=True)
class Playback:
    """Recording links for a finished live."""

    url: str
    backup_url: str
    duration_ms: int = 0


@dataclass(frozen=True)
class LiveCutInfo:
    """Raw cut-info response fields."""

    status: int
    url: str

    @property
    def is_ready(self) -> bool:
        return self.status == 1
