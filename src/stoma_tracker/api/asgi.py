"""ASGI entrypoint for the stoma food tracker API."""

from stoma_tracker.api.app import create_app
from stoma_tracker.containers import build_container

app = create_app(build_container())
