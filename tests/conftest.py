"""Shared pytest fixtures for the Basket test suite."""

from __future__ import annotations

from typing import Callable, Dict, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from basket.config import get_settings
from basket.db.repository import reset_repository_state
from basket.db.users import register_user
from basket.models.users import Actor, RegistrationPolicy
from basket.server.app import create_app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_basket.db"
    monkeypatch.setenv("BASKET_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("BASKET_API_TOKEN", raising=False)
    for name in ("BASKET_SERVER_HOST", "BASKET_SERVER_PORT", "BASKET_SERVER_RELOAD", "BASKET_SERVER_SHUTDOWN_AFTER"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("BASKET_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def make_actor() -> Callable[[str], Actor]:
    """Register a user and return the matching authenticated identity."""

    def _make(name: str) -> Actor:
        user = register_user(
            email=f"{name.lower()}@example.com",
            name=name,
            password_hash="not-a-real-hash",
            policy=RegistrationPolicy(),
        )
        return Actor(user_id=user.id, email=user.email)

    return _make


@pytest.fixture()
def alice(make_actor) -> Actor:
    return make_actor("Alice")


@pytest.fixture()
def bob(make_actor) -> Actor:
    return make_actor("Bob")


@pytest.fixture()
def carol(make_actor) -> Actor:
    return make_actor("Carol")


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def headers_for() -> Callable[[Actor], Dict[str, str]]:
    """Build the identity headers the API trusts from an upstream auth layer."""

    def _headers(actor: Actor) -> Dict[str, str]:
        return {"X-User-Id": actor.user_id, "X-User-Email": actor.email}

    return _headers
