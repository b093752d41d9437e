"""ASGI application factory and dependencies for the Basket server."""

from basket.server.app import app, create_app

__all__ = ["app", "create_app"]
