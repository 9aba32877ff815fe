"""Tests for background enrichment of started and ended lives."""

import asyncio
import sqlite3
from dataclasses import dataclass, field

from acfun_live_tracker.domain.errors import TransportError
from acfun_live_tracker.domain.reconcile import Reconciliation
from acfun_live_tracker.services.enrichment import EnrichmentDispatcher
from acfun_live_tracker.services.lookups import LookupService
from acfun_live_tracker.services.sessions import SessionService
from tests.conftest import (
    ALI_URL,
    TX_URL,
    FakeAcfunClient,
    InMemorySessionRepository,
    SleepRecorder,
    cut_info_payload,
    make_session,
    playback_payload,
    summary_payload,
)


def _dispatcher(client, session_service, no_sleep_retry) -> EnrichmentDispatcher:
    return EnrichmentDispatcher(
        session_service=session_service,
        lookup_service=LookupService(client, no_sleep_retry),
        end_grace_seconds=10,
        sleep=SleepRecorder(),
    )


def _run(dispatcher: EnrichmentDispatcher, reconciliation: Reconciliation) -> None:
    async def scenario() -> None:
        dispatcher.dispatch(reconciliation)
        await dispatcher.wait_idle()

    asyncio.run(scenario())


def test_started_live_is_stored_with_cut_number(session_service, no_sleep_retry):
    client = FakeAcfunClient(cut_infos={"a": cut_info_payload(1, "/live/555")})
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(started=[make_session("a")]))

    stored = session_service.get("a")
    assert stored.cut_number == 555
    assert stored.duration_ms == 0
    assert dispatcher.pending == 0


def test_failed_cut_lookup_leaves_zero(session_service, no_sleep_retry):
    client = FakeAcfunClient(cut_infos={"a": TransportError("down")})
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(started=[make_session("a")]))

    assert session_service.get("a").cut_number == 0
    assert client.count("cut") == 3


def test_bad_cut_url_is_abandoned_without_retry(session_service, no_sleep_retry):
    client = FakeAcfunClient(cut_infos={"a": cut_info_payload(1, "/1/2")})
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(started=[make_session("a")]))

    assert session_service.get("a").cut_number == 0
    assert client.count("cut") == 1


def test_ended_live_gets_duration_and_playback(session_service, no_sleep_retry):
    client = FakeAcfunClient(
        summaries={"a": summary_payload(600000)},
        playbacks={"a": playback_payload(TX_URL, ALI_URL)},
    )
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(ended=[make_session("a")]))

    stored = session_service.get("a")
    assert stored.duration_ms == 600000
    assert stored.playback_url == ALI_URL
    assert stored.backup_url == TX_URL
    assert dispatcher.sleep.delays == [10]


def test_ended_live_with_zero_duration_is_not_stored(session_service, no_sleep_retry):
    client = FakeAcfunClient(summaries={"a": summary_payload(0)})
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(ended=[make_session("a")]))

    assert not session_service.exists("a")
    assert client.count("summary") == 1
    assert client.count("playback") == 0


def test_ambiguous_playback_leaves_links_empty(session_service, no_sleep_retry):
    client = FakeAcfunClient(
        summaries={"a": summary_payload(1000)},
        playbacks={"a": playback_payload(TX_URL, TX_URL)},
    )
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(dispatcher, Reconciliation(ended=[make_session("a")]))

    stored = session_service.get("a")
    assert stored.duration_ms == 1000
    assert (stored.playback_url, stored.backup_url) == ("", "")


def test_end_after_start_updates_existing_record(session_service, no_sleep_retry):
    client = FakeAcfunClient(
        cut_infos={"a": cut_info_payload(1, "/8")},
        summaries={"a": summary_payload(2000)},
    )
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)
    session = make_session("a")

    _run(dispatcher, Reconciliation(started=[session]))
    _run(dispatcher, Reconciliation(ended=[session]))

    stored = session_service.get("a")
    assert stored.cut_number == 8
    assert stored.duration_ms == 2000
    assert session_service.list_by_owner(session.owner_id) == [stored]


class _ExplodingLookups(LookupService):
    async def fetch_cut_number(self, owner_id: int, live_id: str) -> int:
        if live_id == "boom":
            raise RuntimeError("unexpected")
        return await super().fetch_cut_number(owner_id, live_id)


def test_task_failure_does_not_affect_siblings(session_service, no_sleep_retry):
    client = FakeAcfunClient(cut_infos={"ok": cut_info_payload(1, "/3")})
    dispatcher = EnrichmentDispatcher(
        session_service=session_service,
        lookup_service=_ExplodingLookups(client, no_sleep_retry),
        sleep=SleepRecorder(),
    )

    _run(
        dispatcher,
        Reconciliation(started=[make_session("boom"), make_session("ok")]),
    )

    assert session_service.get("ok").cut_number == 3
    assert session_service.get("boom").cut_number == 0
    assert dispatcher.pending == 0


@dataclass
class _LockedOnInsert(InMemorySessionRepository):
    locked_live_ids: set[str] = field(default_factory=set)

    def insert_if_absent(self, session) -> bool:
        if session.live_id in self.locked_live_ids:
            raise sqlite3.OperationalError("database is locked")
        return super().insert_if_absent(session)


def test_storage_failure_on_start_skips_only_that_live(no_sleep_retry):
    repository = _LockedOnInsert(locked_live_ids={"bad"})
    session_service = SessionService(repository)
    client = FakeAcfunClient(cut_infos={"good": cut_info_payload(1, "/live/9")})
    dispatcher = _dispatcher(client, session_service, no_sleep_retry)

    _run(
        dispatcher,
        Reconciliation(started=[make_session("bad"), make_session("good")]),
    )

    assert session_service.get("bad") is None
    assert session_service.get("good").cut_number == 9
    assert client.calls == [("cut", "good")]
