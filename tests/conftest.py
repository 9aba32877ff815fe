"""Shared test fixtures."""

import json
from dataclasses import dataclass, field, replace

import pytest

from acfun_live_tracker.adapters.acfun_client import AcfunClient
from acfun_live_tracker.config import Settings
from acfun_live_tracker.containers import AppContainer, build_services
from acfun_live_tracker.domain.models import LiveSession
from acfun_live_tracker.services.retry import RetryPolicy
from acfun_live_tracker.services.sessions import SessionRepository, SessionService


@dataclass
class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_session(
    live_id: str,
    owner_id: int = 646973,
    started_at_ms: int = 1_700_000_000_000,
    **overrides: object,
) -> LiveSession:
    session = LiveSession(
        live_id=live_id,
        owner_id=owner_id,
        owner_name=f"owner-{owner_id}",
        stream_name=f"stream-{live_id}",
        started_at_ms=started_at_ms,
        title=f"title {live_id}",
    )
    return replace(session, **overrides) if overrides else session


def live_entry(session: LiveSession) -> dict[str, object]:
    return {
        "liveId": session.live_id,
        "authorId": session.owner_id,
        "user": {"name": session.owner_name},
        "streamName": session.stream_name,
        "createTime": session.started_at_ms,
        "title": session.title,
    }


def live_list_payload(
    sessions: list[LiveSession], *, no_more: bool = True, result: int = 0
) -> dict[str, object]:
    return {
        "channelListData": {
            "result": result,
            "pcursor": "no_more" if no_more else "10",
            "liveList": [live_entry(session) for session in sessions],
        }
    }


def cut_info_payload(status: int = 1, url: str = "") -> dict[str, object]:
    return {"result": 0, "liveCutStatus": status, "liveCutUrl": url}


def summary_payload(duration_ms: int) -> dict[str, object]:
    return {
        "result": 1,
        "data": {"liveDurationMs": duration_ms, "likeCount": "10", "watchCount": "5"},
    }


def playback_payload(url: str, backup_url: str) -> dict[str, object]:
    manifest = {
        "adaptationSet": {
            "duration": 600000,
            "representation": [{"url": url, "backupUrl": [backup_url]}],
        }
    }
    return {"result": 1, "data": {"adaptiveManifest": json.dumps(manifest)}}


ALI_URL = "https://alivod.example.com/live/1.m3u8"
TX_URL = "https://txvod.example.com/live/1.m3u8"


@dataclass
class FakeAcfunClient(AcfunClient):
    """Fake upstream that serves configured payloads or raises errors."""

    lives: list[LiveSession] = field(default_factory=list)
    terminal_page_size: int = 10_000
    list_error: Exception | None = None
    cut_infos: dict[str, object] = field(default_factory=dict)
    summaries: dict[str, object] = field(default_factory=dict)
    playbacks: dict[str, object] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)

    async def get_live_list(self, count: int) -> dict[str, object]:
        self.calls.append(("list", count))
        if self.list_error is not None:
            raise self.list_error
        return live_list_payload(self.lives, no_more=count >= self.terminal_page_size)

    async def get_live_cut_info(self, owner_id: int, live_id: str) -> dict[str, object]:
        self.calls.append(("cut", live_id))
        return _answer(self.cut_infos.get(live_id, cut_info_payload(status=0)))

    async def get_summary(self, live_id: str) -> dict[str, object]:
        self.calls.append(("summary", live_id))
        return _answer(self.summaries.get(live_id, summary_payload(0)))

    async def get_playback(self, live_id: str) -> dict[str, object]:
        self.calls.append(("playback", live_id))
        return _answer(self.playbacks.get(live_id, playback_payload(ALI_URL, TX_URL)))

    def count(self, kind: str) -> int:
        return sum(1 for call_kind, _ in self.calls if call_kind == kind)


def _answer(value: object) -> dict[str, object]:
    if isinstance(value, Exception):
        raise value
    if isinstance(value, list):
        item = value.pop(0) if len(value) > 1 else value[0]
        return _answer(item)
    return value  # type: ignore[return-value]


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[str, LiveSession] = field(default_factory=dict)

    def insert_if_absent(self, session: LiveSession) -> bool:
        if session.live_id in self.sessions:
            return False
        self.sessions[session.live_id] = session
        return True

    def set_duration_if_unset(self, live_id: str, duration_ms: int) -> bool:
        session = self.sessions.get(live_id)
        if session is None or session.duration_ms:
            return False
        self.sessions[live_id] = replace(session, duration_ms=duration_ms)
        return True

    def set_cut_number_if_unset(self, live_id: str, cut_number: int) -> bool:
        session = self.sessions.get(live_id)
        if session is None or session.cut_number:
            return False
        self.sessions[live_id] = replace(session, cut_number=cut_number)
        return True

    def set_playback_if_unset(self, live_id: str, url: str, backup_url: str) -> bool:
        session = self.sessions.get(live_id)
        if session is None or session.playback_url or session.backup_url:
            return False
        self.sessions[live_id] = replace(
            session, playback_url=url, backup_url=backup_url
        )
        return True

    def get(self, live_id: str) -> LiveSession | None:
        return self.sessions.get(live_id)

    def list_by_owner(self, owner_id: int, limit: int) -> list[LiveSession]:
        owned = sorted(
            (s for s in self.sessions.values() if s.owner_id == owner_id),
            key=lambda s: s.started_at_ms,
            reverse=True,
        )
        return owned if limit < 0 else owned[:limit]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_path=":memory:",
        watched_owner_ids="646973",
        retry_delay_seconds=0,
        end_grace_seconds=0,
        poll_interval_seconds=0,
        admin_token="admin-token",
    )


@pytest.fixture
def repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def session_service(repository: InMemorySessionRepository) -> SessionService:
    return SessionService(repository)


@pytest.fixture
def acfun_client() -> FakeAcfunClient:
    return FakeAcfunClient()


@pytest.fixture
def no_sleep_retry() -> RetryPolicy:
    return RetryPolicy(attempts=3, delay_seconds=10, sleep=SleepRecorder())


@pytest.fixture
def container(
    settings: Settings,
    acfun_client: FakeAcfunClient,
    session_service: SessionService,
) -> AppContainer:
    lookup_service, fetcher, monitor, console = build_services(
        settings, acfun_client, session_service
    )
    lookup_service.retry.sleep = SleepRecorder()
    monitor.dispatcher.sleep = SleepRecorder()

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        acfun_client=acfun_client,
        session_service=session_service,
        lookup_service=lookup_service,
        snapshot_fetcher=fetcher,
        monitor=monitor,
        console=console,
        close_resources=close_resources,
    )
