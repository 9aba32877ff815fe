"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from acfun_live_tracker.adapters.acfun_client import AcfunClient, HttpxAcfunClient
from acfun_live_tracker.adapters.sqlite_session_repository import (
    SqliteSessionRepository,
)
from acfun_live_tracker.config import Settings, parse_watched_owner_ids
from acfun_live_tracker.services.console import ConsoleCommandHandler
from acfun_live_tracker.services.enrichment import EnrichmentDispatcher
from acfun_live_tracker.services.lookups import LookupService
from acfun_live_tracker.services.monitor import LiveMonitor
from acfun_live_tracker.services.reconciler import Reconciler
from acfun_live_tracker.services.retry import RetryPolicy
from acfun_live_tracker.services.sessions import SessionService
from acfun_live_tracker.services.snapshots import SnapshotFetcher


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    acfun_client: AcfunClient
    session_service: SessionService
    lookup_service: LookupService
    snapshot_fetcher: SnapshotFetcher
    monitor: LiveMonitor
    console: ConsoleCommandHandler
    close_resources: Callable[[], Awaitable[None]]


def build_services(
    settings: Settings,
    acfun_client: AcfunClient,
    session_service: SessionService,
) -> tuple[LookupService, SnapshotFetcher, LiveMonitor, ConsoleCommandHandler]:
    """Wire the pipeline services around a client and a session store."""
    watched_owner_ids = parse_watched_owner_ids(settings.watched_owner_ids)
    retry = RetryPolicy(
        attempts=settings.retry_attempts,
        delay_seconds=settings.retry_delay_seconds,
    )
    lookup_service = LookupService(client=acfun_client, retry=retry)
    fetcher = SnapshotFetcher(
        client=acfun_client,
        initial_page_size=settings.initial_page_size,
        max_page_size=settings.max_page_size,
    )
    dispatcher = EnrichmentDispatcher(
        session_service=session_service,
        lookup_service=lookup_service,
        end_grace_seconds=settings.end_grace_seconds,
    )
    monitor = LiveMonitor(
        fetcher=fetcher,
        reconciler=Reconciler(watched_owner_ids=watched_owner_ids),
        dispatcher=dispatcher,
        retry=retry,
        poll_interval_seconds=settings.poll_interval_seconds,
    )
    console = ConsoleCommandHandler(
        session_service=session_service,
        lookup_service=lookup_service,
        fetcher=fetcher,
        watched_owner_ids=watched_owner_ids,
    )
    return lookup_service, fetcher, monitor, console


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    repository = SqliteSessionRepository.open(resolved_settings.database_path)
    session_service = SessionService(repository)
    acfun_client = HttpxAcfunClient.create(
        user_agent=resolved_settings.user_agent,
        timeout=resolved_settings.http_timeout_seconds,
    )
    lookup_service, fetcher, monitor, console = build_services(
        resolved_settings, acfun_client, session_service
    )

    async def close_resources() -> None:
        await acfun_client.close()
        repository.close()

    return AppContainer(
        settings=resolved_settings,
        acfun_client=acfun_client,
        session_service=session_service,
        lookup_service=lookup_service,
        snapshot_fetcher=fetcher,
        monitor=monitor,
        console=console,
        close_resources=close_resources,
    )
