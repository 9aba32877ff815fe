"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, status

from acfun_live_tracker.api.queries import router as queries_router
from acfun_live_tracker.app_logging import configure_logging
from acfun_live_tracker.containers import AppContainer


def create_app(container: AppContainer, *, run_monitor: bool = True) -> FastAPI:
    """Create a FastAPI app configured with dependencies.

    With ``run_monitor`` the polling loop runs for the lifetime of the app.
    If the loop dies, ``/health`` answers 503 from then on so a supervisor
    can restart the process.
    """
    configure_logging(container.settings.log_file)
    logger = logging.getLogger(__name__)

    def _on_monitor_done(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            app.state.monitor_error = exc
            logger.error("Live monitor stopped with an error: %s", exc)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        stop = asyncio.Event()
        monitor_task: asyncio.Task[None] | None = None
        if run_monitor:
            monitor_task = asyncio.create_task(
                app.state.container.monitor.run(stop), name="live-monitor"
            )
            monitor_task.add_done_callback(_on_monitor_done)
        yield
        stop.set()
        if monitor_task is not None:
            # Errors were recorded by the done callback.
            await asyncio.gather(monitor_task, return_exceptions=True)
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.monitor_error = None

    app.include_router(queries_router)

    @app.get("/health")
    async def health(response: Response) -> dict[str, object]:
        """Health check; fails once the live monitor has died."""
        body: dict[str, object] = {
            "status": "ok",
            "pending_enrichments": app.state.container.monitor.dispatcher.pending,
        }
        if app.state.monitor_error is not None:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            body["status"] = "error"
            body["detail"] = str(app.state.monitor_error)
        return body

    return app
