"""Framework adapters exposing the pipeline over HTTP."""

from telemetry_alerts.adapters.frameworks.asgi import create_asgi_app

__all__ = ["create_asgi_app"]
