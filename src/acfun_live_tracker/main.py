"""Command-line entrypoint: live monitor plus interactive console."""

import argparse
import asyncio
import logging
import signal
import sys
import threading

from acfun_live_tracker.app_logging import configure_logging
from acfun_live_tracker.config import Settings
from acfun_live_tracker.console_commands import help_text
from acfun_live_tracker.containers import AppContainer, build_container
from acfun_live_tracker.domain.errors import LiveTrackerError
from acfun_live_tracker.services.console import ConsoleCommandHandler

_logger = logging.getLogger(__name__)


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, stop: asyncio.Event
) -> None:
    def _handler(signum, frame):  # type: ignore[no-untyped-def]
        _logger.info("Received signal %s, shutting down", signum)
        loop.call_soon_threadsafe(stop.set)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _start_stdin_reader(
    loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[str | None]"
) -> None:
    """Forward stdin lines to ``lines`` from a daemon thread; None marks EOF."""

    def _read() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, None)

    threading.Thread(target=_read, name="console-stdin", daemon=True).start()


async def run_console(
    handler: ConsoleCommandHandler,
    lines: "asyncio.Queue[str | None]",
    stop: asyncio.Event,
) -> None:
    """Execute console commands until ``quit`` or end of input."""
    print(help_text())
    while not stop.is_set():
        line = await lines.get()
        if line is None:
            return
        result = await handler.handle(line)
        for output in result.lines:
            print(output)
        if result.quit:
            stop.set()


async def run_tracker(
    container: AppContainer, stop: asyncio.Event, *, interactive: bool = True
) -> int:
    """Run the monitor (and console) until stopped; return the exit code."""
    loop = asyncio.get_running_loop()
    console_task: asyncio.Task[None] | None = None
    if interactive:
        lines: asyncio.Queue[str | None] = asyncio.Queue()
        _start_stdin_reader(loop, lines)
        console_task = asyncio.create_task(
            run_console(container.console, lines, stop), name="console"
        )
    try:
        await container.monitor.run(stop)
    except LiveTrackerError as exc:
        _logger.error("Live monitor stopped: %s", exc)
        return 1
    finally:
        stop.set()
        if console_task is not None:
            console_task.cancel()
        await container.close_resources()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run until interrupted."""
    parser = argparse.ArgumentParser(
        prog="acfun-live-tracker",
        description="Record AcFun lives as they start and end.",
    )
    parser.add_argument(
        "--no-console",
        action="store_true",
        help="run without reading commands from stdin",
    )
    parser.add_argument("--database", help="override DATABASE_PATH")
    args = parser.parse_args(argv)

    settings = Settings()
    if args.database:
        settings = settings.model_copy(update={"database_path": args.database})
    configure_logging(settings.log_file)
    container = build_container(settings)

    async def _run() -> int:
        stop = asyncio.Event()
        _install_signal_handlers(asyncio.get_running_loop(), stop)
        return await run_tracker(container, stop, interactive=not args.no_console)

    return asyncio.run(_run())


if __name__ == "__main__":
    sys.exit(main())
