"""ASGI entrypoint: ``uvicorn bulkbuy.main:app``."""

from .core.app_factory import create_application

app = create_application()
