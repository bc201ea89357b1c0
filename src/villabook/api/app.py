"""ASGI entrypoint."""

from villabook.api.factory import create_app

app = create_app()
