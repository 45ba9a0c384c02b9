"""ASGI entrypoint for the image optimizer API."""

from image_optimizer.api.app import create_app
from image_optimizer.containers import build_container

app = create_app(build_container())
