"""ASGI entrypoint for the live tracker API."""

from acfun_live_tracker.api.app import create_app
from acfun_live_tracker.containers import build_container

app = create_app(build_container())
